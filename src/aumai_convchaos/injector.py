"""Injection coordinator for aumai-convchaos."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Mapping, Sequence
from typing import Any, NamedTuple, cast

from pydantic import TypeAdapter, ValidationError

from aumai_convchaos.core import ConfigurationError, SeededRandom
from aumai_convchaos.models import (
    AgentFailureConfig,
    ChaosConfiguration,
    ChaosMode,
    ChaosResult,
    ChaosStatistics,
    ChaosTimelineEntry,
    Conversation,
    CorruptionConfig,
    DelayConfig,
    Message,
    MessageLossConfig,
    NetworkPartitionConfig,
    ReorderConfig,
)
from aumai_convchaos.modes import MessageMode, ModeOutcome, apply_mode, build_mode
from aumai_convchaos.settings import get_settings
from aumai_convchaos.timeline import TimelineRecorder

logger = logging.getLogger(__name__)

_CONFIG_TYPES = (
    MessageLossConfig,
    DelayConfig,
    ReorderConfig,
    CorruptionConfig,
    AgentFailureConfig,
    NetworkPartitionConfig,
)
_STREAMABLE_MODES = frozenset(
    {
        ChaosMode.message_loss,
        ChaosMode.delay,
        ChaosMode.corruption,
        ChaosMode.agent_failure,
    }
)
_config_adapter: TypeAdapter[ChaosConfiguration] = TypeAdapter(ChaosConfiguration)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_configuration(raw: ChaosConfiguration | Mapping[str, Any]) -> ChaosConfiguration:
    """Return a validated configuration model.

    Raises:
        ConfigurationError: if *raw* is not a valid chaos configuration.
    """
    if isinstance(raw, _CONFIG_TYPES):
        return raw
    try:
        return _config_adapter.validate_python(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid chaos configuration: {exc}") from exc


def fingerprint(
    seed: int,
    configs: Sequence[ChaosConfiguration],
    statistics: ChaosStatistics,
) -> str:
    """Stable SHA-256 hex digest of ``(seed, configs, statistics)``."""
    payload = {
        "seed": seed,
        "configs": [config.model_dump(mode="json", by_alias=True) for config in configs],
        "statistics": statistics.model_dump(mode="json", by_alias=True),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def merge_statistics(total: int, outcomes: Iterable[ModeOutcome]) -> ChaosStatistics:
    """Combine per-mode statistics into one run-level summary.

    ``modified_messages`` counts distinct messages, so a message delayed
    and later corrupted is counted once.
    """
    modified: dict[str, None] = {}
    delays: list[float] = []
    dropped = delayed = reordered = corrupted = 0
    for outcome in outcomes:
        stats = outcome.statistics
        dropped += stats.dropped_messages
        delayed += stats.delayed_messages
        reordered += stats.reordered_messages
        corrupted += stats.corrupted_messages
        delays.extend(outcome.delays)
        for message_id in outcome.affected_message_ids:
            modified.setdefault(message_id, None)
    return ChaosStatistics(
        total_messages=total,
        modified_messages=len(modified),
        dropped_messages=dropped,
        delayed_messages=delayed,
        reordered_messages=reordered,
        corrupted_messages=corrupted,
        average_delay=sum(delays) / len(delays) if delays else None,
        max_delay=max(delays) if delays else None,
    )


def _build_result(
    seed: int,
    configs: Sequence[ChaosConfiguration],
    total: int,
    outcomes: list[ModeOutcome],
) -> ChaosResult:
    statistics = merge_statistics(total, outcomes)
    agents: dict[str, None] = {}
    for outcome in outcomes:
        for agent_id in outcome.affected_agents:
            agents.setdefault(agent_id, None)
    # gated-off configurations produce no outcome
    modes = [outcome.mode for outcome in outcomes]
    return ChaosResult(
        mode=modes[0] if modes else ChaosMode(configs[0].mode),
        modes=modes,
        seed=seed,
        affected_messages=statistics.modified_messages,
        affected_agents=list(agents),
        statistics=statistics,
        fingerprint=fingerprint(seed, configs, statistics),
    )


class InjectionOutcome(NamedTuple):
    """What :meth:`ChaosInjector.inject` hands back."""

    conversation: Conversation
    result: ChaosResult
    timeline: list[ChaosTimelineEntry]


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


class ChaosStream:
    """Pull-based chaos over a live message source.

    Each ``__anext__`` pulls input messages until one survives every
    configured mode and returns it, so nothing beyond the current message is
    buffered and a slow consumer throttles the source.  Emission follows
    arrival order.  Stop iterating to end early.

    ``result`` becomes available once the source is exhausted.
    """

    def __init__(
        self,
        source: AsyncIterable[Message],
        stages: list[MessageMode],
        seed: int,
        configs: list[ChaosConfiguration],
        recorder: TimelineRecorder,
    ) -> None:
        self._source: AsyncIterator[Message] = source.__aiter__()
        self._stages = stages
        self._seed = seed
        self._configs = configs
        self._recorder = recorder
        self._arrived = 0
        self._result: ChaosResult | None = None

    def __aiter__(self) -> ChaosStream:
        return self

    async def __anext__(self) -> Message:
        while True:
            try:
                message = await self._source.__anext__()
            except StopAsyncIteration:
                self._finish()
                raise
            index = self._arrived
            self._arrived += 1
            current: Message | None = message
            for stage in self._stages:
                current = stage.feed(index, current)
                if current is None:
                    break
            if current is not None:
                return current

    def _finish(self) -> None:
        if self._result is not None:
            return
        outcomes = [stage.outcome([]) for stage in self._stages]
        self._result = _build_result(self._seed, self._configs, self._arrived, outcomes)
        logger.info(
            "Stream finished: %d arrived, %d modified",
            self._arrived,
            self._result.statistics.modified_messages,
        )

    @property
    def timeline(self) -> list[ChaosTimelineEntry]:
        return self._recorder.entries()

    @property
    def result(self) -> ChaosResult:
        if self._result is None:
            raise RuntimeError("Stream result is only available after the source is exhausted.")
        return self._result


# ---------------------------------------------------------------------------
# ChaosInjector
# ---------------------------------------------------------------------------


class ChaosInjector:
    """Apply an ordered chain of chaos configurations to a conversation.

    One :class:`SeededRandom` is created per call and threaded through every
    mode of the chain, so an injector instance holds no run state and
    independent calls can run in parallel.

    Args:
        default_seed: Seed used when no configuration carries one.  Falls
            back to ``CONVCHAOS_DEFAULT_SEED`` and then to the clock.
    """

    def __init__(self, default_seed: int | None = None) -> None:
        self._default_seed = default_seed

    def _resolve_seed(self, configs: Sequence[ChaosConfiguration]) -> tuple[int, int | None]:
        """Return the run seed and the index of the configuration supplying it."""
        for position, config in enumerate(configs):
            if config.seed is not None:
                return config.seed, position
        seed = self._default_seed
        if seed is None:
            seed = get_settings().default_seed
        if seed is None:
            seed = time.time_ns() % SeededRandom.MODULUS
            logger.info("No seed configured; using clock-derived seed %d", seed)
        return seed, None

    @staticmethod
    def _parse_all(
        configs: Iterable[ChaosConfiguration | Mapping[str, Any]],
    ) -> list[ChaosConfiguration]:
        parsed = [parse_configuration(config) for config in configs]
        if not parsed:
            raise ConfigurationError("At least one chaos configuration is required.")
        return parsed

    def inject(
        self,
        conversation: Conversation,
        configs: Iterable[ChaosConfiguration | Mapping[str, Any]],
    ) -> InjectionOutcome:
        """Apply *configs* in order, each to the output of the previous one.

        A configuration with its own ``seed`` reseeds the shared generator
        before it runs, except the one that seeded the run.  A configuration
        with ``probability`` set is applied only if one gate draw succeeds.

        Returns:
            ``(mutated_conversation, result, timeline)``.  The input
            conversation is left untouched.
        """
        chain = self._parse_all(configs)
        seed, seeded_by = self._resolve_seed(chain)
        rng = SeededRandom(seed)
        recorder = TimelineRecorder()
        agent_ids = conversation.agent_ids()
        messages = list(conversation.messages)
        outcomes: list[ModeOutcome] = []

        for position, config in enumerate(chain):
            if config.seed is not None and position != seeded_by:
                rng.reset(config.seed)
            mode = ChaosMode(config.mode)
            if config.probability is not None and not rng.next_boolean(config.probability):
                recorder.record(
                    mode,
                    "skip",
                    -1,
                    conversation.start_time,
                    {"probability": config.probability},
                )
                continue
            outcome = apply_mode(config.parameters, messages, rng, agent_ids)
            recorder.extend(outcome.timeline)
            outcomes.append(outcome)
            messages = outcome.messages

        result = _build_result(seed, chain, len(conversation.messages), outcomes)
        mutated = conversation.model_copy(
            update={
                "messages": messages,
                "agents": list(conversation.agents),
                "metadata": dict(conversation.metadata),
            }
        )
        logger.info(
            "Injected %s into %s (seed=%d): %d/%d messages modified, %d dropped",
            ",".join(m.value for m in result.modes),
            conversation.id,
            seed,
            result.statistics.modified_messages,
            result.statistics.total_messages,
            result.statistics.dropped_messages,
        )
        return InjectionOutcome(mutated, result, recorder.entries())

    def inject_stream(
        self,
        source: AsyncIterable[Message],
        configs: Iterable[ChaosConfiguration | Mapping[str, Any]],
        agent_ids: Iterable[str] | None = None,
    ) -> ChaosStream:
        """Wrap *source* in a :class:`ChaosStream`.

        Only per-message modes (message-loss, delay, corruption,
        agent-failure) are supported.  Messages pass through every
        configuration before the next one is pulled, so a chain of several
        configurations draws in a different order than :meth:`inject`; a
        single configuration behaves exactly like the batch path.  A
        configuration with its own seed (other than the run seed) gets its
        own generator.

        Raises:
            ConfigurationError: if a configuration needs lookahead.
        """
        chain = self._parse_all(configs)
        for config in chain:
            if ChaosMode(config.mode) not in _STREAMABLE_MODES:
                raise ConfigurationError(
                    f"Mode {config.mode!r} needs the whole sequence and cannot stream."
                )
        seed, seeded_by = self._resolve_seed(chain)
        rng = SeededRandom(seed)
        recorder = TimelineRecorder()
        known_agents = list(agent_ids) if agent_ids is not None else None

        stages: list[MessageMode] = []
        for position, config in enumerate(chain):
            stage_rng = rng
            if config.seed is not None and position != seeded_by:
                stage_rng = SeededRandom(config.seed)
            mode = ChaosMode(config.mode)
            if config.probability is not None and not stage_rng.next_boolean(config.probability):
                recorder.record(mode, "skip", -1, 0.0, {"probability": config.probability})
                continue
            stage = cast(
                MessageMode,
                build_mode(config.parameters, stage_rng, known_agents, recorder),
            )
            stages.append(stage)

        return ChaosStream(source, stages, seed, chain, recorder)


__all__ = [
    "ChaosInjector",
    "ChaosStream",
    "InjectionOutcome",
    "fingerprint",
    "merge_statistics",
    "parse_configuration",
]
