"""Chaos mode engine: the six message-sequence transformations.

Every mode consumes a caller-owned :class:`~aumai_convchaos.core.SeededRandom`
in source order, so the same generator state and input always yield the same
output.

Per-message modes (loss, delay, corruption, agent-failure) decide each
message's fate on its own and can therefore also run over a live stream via
:meth:`MessageMode.feed`.  Reorder and network-partition need to look at the
whole sequence and only offer :meth:`ChaosModeBase.run`.

Classes
-------
- ModeOutcome           Result of running one mode over a sequence.
- MessageLossMode       Random, burst and selective message loss.
- DelayMode             Timestamp offsets from uniform/normal/exponential draws.
- ReorderMode           Windowed swaps, optionally causality-preserving.
- CorruptionMode        Content truncation, scrambling, replacement, injection.
- AgentFailureMode      Crash, timeout, slow and byzantine agent failures.
- NetworkPartitionMode  Drops or holds replies that cross a partition.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from aumai_convchaos.core import SeededRandom
from aumai_convchaos.models import (
    AgentFailureParameters,
    ChaosMode,
    ChaosParameters,
    ChaosStatistics,
    ChaosTimelineEntry,
    CorruptionParameters,
    CorruptionType,
    DelayDistribution,
    DelayParameters,
    FailureType,
    LossPattern,
    Message,
    MessageLossParameters,
    NetworkPartitionParameters,
    ReorderParameters,
    Severity,
)
from aumai_convchaos.timeline import TimelineRecorder

logger = logging.getLogger(__name__)

SEVERITY_FRACTION: dict[Severity, float] = {
    Severity.low: 0.1,
    Severity.medium: 0.5,
    Severity.high: 1.0,
}

SLOWDOWN_FACTOR = 3.0


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def corrupt_content(
    content: str,
    corruption_type: CorruptionType,
    severity: Severity,
    rng: SeededRandom,
) -> str:
    """Return a corrupted copy of *content*.

    *severity* sets how many characters are touched (10%, 50% or 100%, at
    least one).  Empty content is returned unchanged without drawing.
    """
    length = len(content)
    if length == 0:
        return content
    touched = max(1, round_half_up(length * SEVERITY_FRACTION[severity]))

    if corruption_type == CorruptionType.truncate:
        return content[: rng.next_int(length - touched, length)]
    if corruption_type == CorruptionType.inject:
        return content + rng.string(touched)

    start = rng.next_int(0, length - touched)
    span = content[start : start + touched]
    if corruption_type == CorruptionType.scramble:
        span = "".join(rng.shuffle(span))
    else:
        span = rng.string(touched)
    return content[:start] + span + content[start + touched :]


# ---------------------------------------------------------------------------
# Bookkeeping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModeOutcome:
    """Mutated messages plus everything a mode observed while producing them.

    ``samples`` holds the raw random outcome of every draw-backed decision
    (a bool, a burst length, a delay offset, a displacement) and feeds the
    statistical validator.
    """

    mode: ChaosMode
    messages: list[Message]
    statistics: ChaosStatistics
    timeline: list[ChaosTimelineEntry]
    affected_message_ids: list[str]
    affected_agents: list[str]
    delays: list[float] = field(default_factory=list)
    samples: list[Any] = field(default_factory=list)


class _Tally:
    def __init__(self, mode: ChaosMode, recorder: TimelineRecorder | None = None) -> None:
        self.mode = mode
        self.recorder = recorder if recorder is not None else TimelineRecorder()
        self.entries: list[ChaosTimelineEntry] = []
        self.seen = 0
        self.dropped = 0
        self.delayed = 0
        self.corrupted = 0
        self.reordered = 0
        self.delays: list[float] = []
        self.samples: list[Any] = []
        # dicts keep first-seen order
        self.message_ids: dict[str, None] = {}
        self.agents: dict[str, None] = {}

    def touch(self, message: Message) -> None:
        self.message_ids.setdefault(message.id, None)
        self.agents.setdefault(message.agent_id, None)

    def record(
        self, action: str, index: int, message: Message, details: dict[str, Any]
    ) -> None:
        entry = self.recorder.record(
            self.mode,
            action,
            index,
            message.timestamp,
            {"messageId": message.id, "agentId": message.agent_id, **details},
        )
        self.entries.append(entry)

    def drop(self, index: int, message: Message, details: dict[str, Any]) -> None:
        self.dropped += 1
        self.touch(message)
        self.record("drop", index, message, details)

    def delay(
        self, index: int, message: Message, offset: float, details: dict[str, Any]
    ) -> Message:
        delayed = message.model_copy(update={"timestamp": message.timestamp + offset})
        self.delayed += 1
        self.delays.append(offset)
        self.touch(message)
        self.record(
            "delay",
            index,
            message,
            {"offset": offset, "newTimestamp": delayed.timestamp, **details},
        )
        return delayed

    def corrupt(
        self, index: int, message: Message, content: str, details: dict[str, Any]
    ) -> Message:
        # a one-character scramble or a full-length truncation can be a no-op
        if content == message.content:
            return message
        self.corrupted += 1
        self.touch(message)
        self.record(
            "corrupt",
            index,
            message,
            {"originalLength": len(message.content), "newLength": len(content), **details},
        )
        return message.model_copy(update={"content": content})

    def outcome(self, messages: list[Message]) -> ModeOutcome:
        statistics = ChaosStatistics(
            total_messages=self.seen,
            modified_messages=len(self.message_ids),
            dropped_messages=self.dropped,
            delayed_messages=self.delayed,
            reordered_messages=self.reordered,
            corrupted_messages=self.corrupted,
            average_delay=sum(self.delays) / len(self.delays) if self.delays else None,
            max_delay=max(self.delays) if self.delays else None,
        )
        return ModeOutcome(
            mode=self.mode,
            messages=messages,
            statistics=statistics,
            timeline=list(self.entries),
            affected_message_ids=list(self.message_ids),
            affected_agents=list(self.agents),
            delays=list(self.delays),
            samples=list(self.samples),
        )


# ---------------------------------------------------------------------------
# Mode base classes
# ---------------------------------------------------------------------------


class ChaosModeBase:
    """A single chaos transformation bound to its parameters and generator."""

    mode: ChaosMode

    def __init__(
        self, rng: SeededRandom, recorder: TimelineRecorder | None = None
    ) -> None:
        self._rng = rng
        self._tally = _Tally(self.mode, recorder)

    def run(self, messages: Sequence[Message]) -> ModeOutcome:
        raise NotImplementedError


class MessageMode(ChaosModeBase):
    """A mode that settles each message independently, in arrival order."""

    def feed(self, index: int, message: Message) -> Message | None:
        """Decide the fate of one message.  ``None`` means it was dropped."""
        self._tally.seen += 1
        return self._process(index, message)

    def run(self, messages: Sequence[Message]) -> ModeOutcome:
        survivors: list[Message] = []
        for index, message in enumerate(messages):
            result = self.feed(index, message)
            if result is not None:
                survivors.append(result)
        return self.outcome(survivors)

    def outcome(self, messages: list[Message]) -> ModeOutcome:
        return self._tally.outcome(messages)

    def _process(self, index: int, message: Message) -> Message | None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Per-message modes
# ---------------------------------------------------------------------------


class MessageLossMode(MessageMode):
    """Drop messages independently, in bursts, or only for target agents."""

    mode = ChaosMode.message_loss

    def __init__(
        self,
        parameters: MessageLossParameters,
        rng: SeededRandom,
        recorder: TimelineRecorder | None = None,
    ) -> None:
        super().__init__(rng, recorder)
        self._params = parameters
        self._burst_remaining = 0

    def _eligible(self, message: Message) -> bool:
        targets = self._params.target_agents
        if targets is None:
            return self._params.pattern != LossPattern.selective
        return message.agent_id in targets

    def _process(self, index: int, message: Message) -> Message | None:
        if not self._eligible(message):
            return message
        if self._params.pattern == LossPattern.burst:
            return self._process_burst(index, message)

        dropped = self._rng.next_boolean(self._params.loss_rate)
        self._tally.samples.append(dropped)
        if not dropped:
            return message
        self._tally.drop(index, message, {"pattern": self._params.pattern.value})
        return None

    def _process_burst(self, index: int, message: Message) -> Message | None:
        if self._burst_remaining > 0:
            self._burst_remaining -= 1
            self._tally.drop(
                index, message, {"pattern": "burst", "remaining": self._burst_remaining}
            )
            return None
        if not self._rng.next_boolean(self._params.loss_rate):
            return message
        upper = max(1, round_half_up(1.0 / self._params.loss_rate))
        length = self._rng.next_int(1, upper)
        self._tally.samples.append(length)
        self._burst_remaining = length - 1
        self._tally.drop(index, message, {"pattern": "burst", "burstLength": length})
        return None


class DelayMode(MessageMode):
    """Shift timestamps forward by a sampled offset.

    The output is not re-sorted: non-monotonic timestamps are the intended
    signal for downstream consumers.
    """

    mode = ChaosMode.delay

    def __init__(
        self,
        parameters: DelayParameters,
        rng: SeededRandom,
        recorder: TimelineRecorder | None = None,
    ) -> None:
        super().__init__(rng, recorder)
        self._params = parameters

    def sample_offset(self) -> float:
        low, high = self._params.min_delay, self._params.max_delay
        if low == high:
            return low
        distribution = self._params.distribution
        if distribution == DelayDistribution.uniform:
            return self._rng.next_float(low, high)
        if distribution == DelayDistribution.normal:
            value = self._rng.gaussian((low + high) / 2, (high - low) / 6)
        else:
            value = self._rng.exponential(1.0 / ((low + high) / 2))
        return min(max(value, low), high)

    def _process(self, index: int, message: Message) -> Message | None:
        targets = self._params.target_agents
        if targets is not None and message.agent_id not in targets:
            return message
        offset = self.sample_offset()
        self._tally.samples.append(offset)
        if offset <= 0:
            return message
        return self._tally.delay(
            index, message, offset, {"distribution": self._params.distribution.value}
        )


class CorruptionMode(MessageMode):
    mode = ChaosMode.corruption

    def __init__(
        self,
        parameters: CorruptionParameters,
        rng: SeededRandom,
        recorder: TimelineRecorder | None = None,
    ) -> None:
        super().__init__(rng, recorder)
        self._params = parameters

    def _process(self, index: int, message: Message) -> Message | None:
        selected = self._rng.next_boolean(self._params.corruption_rate)
        self._tally.samples.append(selected)
        if not selected or not message.content:
            return message
        content = corrupt_content(
            message.content,
            self._params.corruption_type,
            self._params.severity,
            self._rng,
        )
        return self._tally.corrupt(
            index,
            message,
            content,
            {
                "corruptionType": self._params.corruption_type.value,
                "severity": self._params.severity.value,
            },
        )


class AgentFailureMode(MessageMode):
    """Fail whole agents for a window starting at their first message.

    The failure decision for an agent is drawn the first time one of its
    messages is seen, which keeps batch and streaming runs draw-identical.
    """

    mode = ChaosMode.agent_failure

    def __init__(
        self,
        parameters: AgentFailureParameters,
        rng: SeededRandom,
        agent_ids: Iterable[str] | None = None,
        recorder: TimelineRecorder | None = None,
    ) -> None:
        super().__init__(rng, recorder)
        self._params = parameters
        if parameters.target_agents is not None:
            self._candidates: set[str] | None = set(parameters.target_agents)
        elif agent_ids is not None:
            self._candidates = set(agent_ids)
        else:
            self._candidates = None
        self._windows: dict[str, tuple[float, float] | None] = {}

    def _window_for(self, index: int, message: Message) -> tuple[float, float] | None:
        agent_id = message.agent_id
        if agent_id not in self._windows:
            failed = self._rng.next_boolean(self._params.failure_rate)
            self._tally.samples.append(failed)
            window = None
            if failed:
                window = (message.timestamp, message.timestamp + self._params.duration)
                self._tally.agents.setdefault(agent_id, None)
                self._tally.record(
                    "agent-failed",
                    index,
                    message,
                    {
                        "failureType": self._params.failure_type.value,
                        "windowStart": window[0],
                        "windowEnd": window[1],
                    },
                )
            self._windows[agent_id] = window
        return self._windows[agent_id]

    def _process(self, index: int, message: Message) -> Message | None:
        if self._candidates is not None and message.agent_id not in self._candidates:
            return message
        window = self._window_for(index, message)
        if window is None or not (window[0] <= message.timestamp < window[1]):
            return message

        failure_type = self._params.failure_type
        details = {"failureType": failure_type.value}
        if failure_type == FailureType.crash:
            self._tally.drop(index, message, details)
            return None
        if failure_type == FailureType.timeout:
            return self._tally.delay(index, message, self._params.duration, details)
        if failure_type == FailureType.slow:
            offset = (message.timestamp - window[0]) * (SLOWDOWN_FACTOR - 1.0)
            if offset <= 0:
                return message
            return self._tally.delay(index, message, offset, details)

        # byzantine
        if not message.content:
            return message
        corruption_type = self._rng.choice(list(CorruptionType))
        content = corrupt_content(message.content, corruption_type, Severity.high, self._rng)
        return self._tally.corrupt(
            index,
            message,
            content,
            {**details, "corruptionType": corruption_type.value, "severity": "high"},
        )


# ---------------------------------------------------------------------------
# Whole-sequence modes
# ---------------------------------------------------------------------------


class ReorderMode(ChaosModeBase):
    """Swap messages with a partner up to ``max_displacement`` ahead.

    The sequence is cut into consecutive windows of ``window_size``; each
    position draws one displacement and the swap only happens when the
    partner lies in the same window.
    """

    mode = ChaosMode.reorder

    def __init__(
        self,
        parameters: ReorderParameters,
        rng: SeededRandom,
        recorder: TimelineRecorder | None = None,
    ) -> None:
        super().__init__(rng, recorder)
        self._params = parameters

    @staticmethod
    def _breaks_causality(
        order: list[Message], position: dict[str, int], i: int, j: int
    ) -> bool:
        earlier, later = order[i], order[j]
        parent = later.parent_message_id
        if parent is not None and parent in position and i <= position[parent] < j:
            return True
        return any(
            order[k].parent_message_id == earlier.id for k in range(i + 1, j + 1)
        )

    def run(self, messages: Sequence[Message]) -> ModeOutcome:
        order = list(messages)
        self._tally.seen = len(order)
        window = self._params.window_size
        if window == 0:
            return self._tally.outcome(order)

        position = {message.id: i for i, message in enumerate(order)}
        for start in range(0, len(order), window):
            end = min(start + window, len(order))
            for i in range(start, end):
                displacement = self._rng.next_int(0, self._params.max_displacement)
                self._tally.samples.append(displacement)
                j = i + displacement
                if displacement == 0 or j >= end:
                    continue
                if self._params.preserve_causality and self._breaks_causality(
                    order, position, i, j
                ):
                    self._tally.record(
                        "hold", i, order[i], {"toIndex": j, "reason": "causality"}
                    )
                    continue
                earlier, later = order[i], order[j]
                order[i], order[j] = later, earlier
                position[earlier.id], position[later.id] = j, i
                self._tally.record(
                    "swap",
                    i,
                    earlier,
                    {
                        "fromIndex": i,
                        "toIndex": j,
                        "displacement": displacement,
                        "swappedWith": later.id,
                    },
                )

        original = {message.id: i for i, message in enumerate(messages)}
        for i, message in enumerate(order):
            if original[message.id] != i:
                self._tally.reordered += 1
                self._tally.touch(message)
        return self._tally.outcome(order)


class NetworkPartitionMode(ChaosModeBase):
    """Cut the agents into disjoint groups for ``duration`` milliseconds.

    A message crosses the partition when a later message from an agent in a
    different group replies to it.  Crossing messages inside the window are
    dropped, or held until the window closes when partial delivery is
    allowed.  Agents listed in no group are never partitioned.  This mode
    draws nothing from the generator.
    """

    mode = ChaosMode.network_partition

    def __init__(
        self,
        parameters: NetworkPartitionParameters,
        rng: SeededRandom,
        recorder: TimelineRecorder | None = None,
    ) -> None:
        super().__init__(rng, recorder)
        self._params = parameters
        self._group_of = {
            agent_id: group_index
            for group_index, group in enumerate(parameters.partitions)
            for agent_id in group
        }

    def _crossings(self, messages: Sequence[Message]) -> dict[str, Message]:
        index_of = {message.id: i for i, message in enumerate(messages)}
        crossings: dict[str, Message] = {}
        for i, reply in enumerate(messages):
            parent_id = reply.parent_message_id
            if parent_id is None or parent_id in crossings:
                continue
            if index_of.get(parent_id, i) >= i:
                continue
            sender = messages[index_of[parent_id]].agent_id
            sender_group = self._group_of.get(sender)
            reply_group = self._group_of.get(reply.agent_id)
            if sender_group is None or reply_group is None:
                continue
            if sender_group != reply_group:
                crossings[parent_id] = reply
        return crossings

    def run(self, messages: Sequence[Message]) -> ModeOutcome:
        self._tally.seen = len(messages)
        if not messages or self._params.duration == 0:
            return self._tally.outcome(list(messages))

        window_start = min(message.timestamp for message in messages)
        window_end = window_start + self._params.duration
        crossings = self._crossings(messages)

        survivors: list[Message] = []
        for index, message in enumerate(messages):
            reply = crossings.get(message.id)
            if reply is None or not (window_start <= message.timestamp < window_end):
                survivors.append(message)
                continue
            details = {
                "fromPartition": self._group_of[message.agent_id],
                "toPartition": self._group_of[reply.agent_id],
                "replyId": reply.id,
            }
            if not self._params.allow_partial_delivery:
                self._tally.drop(index, message, details)
                continue
            survivors.append(
                self._tally.delay(
                    index, message, window_end - message.timestamp, details
                )
            )
        return self._tally.outcome(survivors)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def build_mode(
    parameters: ChaosParameters,
    rng: SeededRandom,
    agent_ids: Iterable[str] | None = None,
    recorder: TimelineRecorder | None = None,
) -> ChaosModeBase:
    """Instantiate the mode matching *parameters*."""
    if isinstance(parameters, MessageLossParameters):
        return MessageLossMode(parameters, rng, recorder=recorder)
    if isinstance(parameters, DelayParameters):
        return DelayMode(parameters, rng, recorder=recorder)
    if isinstance(parameters, ReorderParameters):
        return ReorderMode(parameters, rng, recorder=recorder)
    if isinstance(parameters, CorruptionParameters):
        return CorruptionMode(parameters, rng, recorder=recorder)
    if isinstance(parameters, AgentFailureParameters):
        return AgentFailureMode(parameters, rng, agent_ids, recorder=recorder)
    if isinstance(parameters, NetworkPartitionParameters):
        return NetworkPartitionMode(parameters, rng, recorder=recorder)
    raise TypeError(f"Unsupported chaos parameters: {type(parameters).__name__}")


def apply_mode(
    parameters: ChaosParameters,
    messages: Sequence[Message],
    rng: SeededRandom,
    agent_ids: Iterable[str] | None = None,
) -> ModeOutcome:
    """Run one mode over *messages* and return the outcome."""
    outcome = build_mode(parameters, rng, agent_ids).run(messages)
    logger.debug(
        "%s: %d in, %d out, %d modified",
        outcome.mode.value,
        outcome.statistics.total_messages,
        len(outcome.messages),
        outcome.statistics.modified_messages,
    )
    return outcome


__all__ = [
    "SEVERITY_FRACTION",
    "SLOWDOWN_FACTOR",
    "AgentFailureMode",
    "ChaosModeBase",
    "CorruptionMode",
    "DelayMode",
    "MessageLossMode",
    "MessageMode",
    "ModeOutcome",
    "NetworkPartitionMode",
    "ReorderMode",
    "apply_mode",
    "build_mode",
    "corrupt_content",
    "round_half_up",
]
