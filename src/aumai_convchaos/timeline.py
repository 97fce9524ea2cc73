"""Timeline capture for chaos injection runs."""

from __future__ import annotations

import logging
from typing import Any

from aumai_convchaos.models import ChaosMode, ChaosTimelineEntry

logger = logging.getLogger(__name__)


class TimelineRecorder:
    """Collect one :class:`ChaosTimelineEntry` per mutation decision.

    Entries are appended in processing order and never modified afterwards.
    A recorder belongs to a single injection run, just like the generator
    driving that run, so no locking is involved.
    """

    def __init__(self) -> None:
        self._entries: list[ChaosTimelineEntry] = []

    def record(
        self,
        mode: ChaosMode,
        action: str,
        message_index: int,
        timestamp: float,
        details: dict[str, Any] | None = None,
    ) -> ChaosTimelineEntry:
        """Append a single entry and return it.

        Args:
            mode:          The chaos mode making the decision.
            action:        A short label (e.g. ``"drop"``, ``"swap"``).
            message_index: Position of the message in the sequence the mode
                           was processing.
            timestamp:     Simulated timestamp of the message at decision time.
            details:       Optional free-form detail dict.
        """
        entry = ChaosTimelineEntry(
            timestamp=timestamp,
            message_index=message_index,
            mode=mode,
            action=action,
            details=details or {},
        )
        self._entries.append(entry)
        logger.debug(
            "%s %s at index %d: %s", mode.value, action, message_index, entry.details
        )
        return entry

    def extend(self, entries: list[ChaosTimelineEntry]) -> None:
        """Append entries produced by another recorder, preserving order."""
        self._entries.extend(entries)

    def entries(self) -> list[ChaosTimelineEntry]:
        """Return a shallow copy of the entries recorded so far."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["TimelineRecorder"]
