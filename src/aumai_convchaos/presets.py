"""Ready-made chaos configuration chains."""

from __future__ import annotations

from collections.abc import Callable

from aumai_convchaos.core import ConfigurationError
from aumai_convchaos.models import (
    AgentFailureConfig,
    AgentFailureParameters,
    ChaosConfiguration,
    CorruptionConfig,
    CorruptionParameters,
    CorruptionType,
    DelayConfig,
    DelayDistribution,
    DelayParameters,
    FailureType,
    LossPattern,
    MessageLossConfig,
    MessageLossParameters,
    NetworkPartitionConfig,
    NetworkPartitionParameters,
    ReorderConfig,
    ReorderParameters,
    Severity,
)

DETERMINISTIC_SEED = 12345


def light_chaos(seed: int | None = None) -> list[ChaosConfiguration]:
    """A little loss and modest jitter."""
    return [
        MessageLossConfig(seed=seed, parameters=MessageLossParameters(loss_rate=0.05)),
        DelayConfig(parameters=DelayParameters(min_delay=50, max_delay=500)),
    ]


def moderate_chaos(seed: int | None = None) -> list[ChaosConfiguration]:
    return [
        MessageLossConfig(seed=seed, parameters=MessageLossParameters(loss_rate=0.15)),
        DelayConfig(parameters=DelayParameters(min_delay=200, max_delay=2000)),
        ReorderConfig(parameters=ReorderParameters(window_size=5, max_displacement=2)),
        CorruptionConfig(
            parameters=CorruptionParameters(
                corruption_rate=0.05,
                corruption_type=CorruptionType.scramble,
                severity=Severity.low,
            )
        ),
    ]


def extreme_chaos(
    seed: int | None = None, partitions: list[list[str]] | None = None
) -> list[ChaosConfiguration]:
    """Every mode at once, for stress runs.

    Without *partitions* the network-partition step is left out, since the
    agent ids of the target conversation are not known here.
    """
    chain: list[ChaosConfiguration] = [
        MessageLossConfig(
            seed=seed,
            parameters=MessageLossParameters(loss_rate=0.3, pattern=LossPattern.burst),
        ),
        DelayConfig(
            parameters=DelayParameters(
                min_delay=1000,
                max_delay=10000,
                distribution=DelayDistribution.exponential,
            )
        ),
        ReorderConfig(
            parameters=ReorderParameters(
                window_size=10, max_displacement=8, preserve_causality=False
            )
        ),
        CorruptionConfig(
            parameters=CorruptionParameters(
                corruption_rate=0.2,
                corruption_type=CorruptionType.scramble,
                severity=Severity.high,
            )
        ),
        AgentFailureConfig(
            parameters=AgentFailureParameters(
                failure_rate=0.25, failure_type=FailureType.byzantine
            )
        ),
    ]
    if partitions:
        chain.append(
            NetworkPartitionConfig(
                parameters=NetworkPartitionParameters(partitions=partitions, duration=15000)
            )
        )
    return chain


def deterministic_chaos() -> list[ChaosConfiguration]:
    """Fixed seeds on every step, so each step is reproducible on its own."""
    return [
        MessageLossConfig(
            seed=DETERMINISTIC_SEED, parameters=MessageLossParameters(loss_rate=0.1)
        ),
        DelayConfig(
            seed=DETERMINISTIC_SEED + 1,
            parameters=DelayParameters(min_delay=100, max_delay=1000),
        ),
        ReorderConfig(
            seed=DETERMINISTIC_SEED + 2,
            parameters=ReorderParameters(window_size=3, max_displacement=3),
        ),
    ]


def _network_unreliable(seed: int | None) -> list[ChaosConfiguration]:
    return [
        MessageLossConfig(
            seed=seed,
            parameters=MessageLossParameters(loss_rate=0.2, pattern=LossPattern.burst),
        ),
        DelayConfig(
            parameters=DelayParameters(
                min_delay=500, max_delay=5000, distribution=DelayDistribution.exponential
            )
        ),
    ]


def _agents_unstable(seed: int | None) -> list[ChaosConfiguration]:
    return [
        AgentFailureConfig(
            seed=seed,
            parameters=AgentFailureParameters(failure_rate=0.3, failure_type=FailureType.crash),
        ),
        AgentFailureConfig(
            parameters=AgentFailureParameters(failure_rate=0.2, failure_type=FailureType.timeout),
        ),
        AgentFailureConfig(
            parameters=AgentFailureParameters(failure_rate=0.1, failure_type=FailureType.slow),
        ),
    ]


def _data_corruption(seed: int | None) -> list[ChaosConfiguration]:
    return [
        CorruptionConfig(
            seed=seed,
            parameters=CorruptionParameters(
                corruption_rate=0.15, corruption_type=CorruptionType.truncate
            ),
        ),
        CorruptionConfig(
            parameters=CorruptionParameters(
                corruption_rate=0.1, corruption_type=CorruptionType.scramble
            ),
        ),
        ReorderConfig(
            parameters=ReorderParameters(
                window_size=8, max_displacement=3, preserve_causality=False
            )
        ),
    ]


SCENARIOS: dict[str, Callable[[int | None], list[ChaosConfiguration]]] = {
    "network-unreliable": _network_unreliable,
    "agents-unstable": _agents_unstable,
    "data-corruption": _data_corruption,
}

PRESETS: dict[str, Callable[[int | None], list[ChaosConfiguration]]] = {
    "light": light_chaos,
    "moderate": moderate_chaos,
    "extreme": extreme_chaos,
    "deterministic": lambda seed: deterministic_chaos(),
    **SCENARIOS,
}


def scenario_chaos(name: str, seed: int | None = None) -> list[ChaosConfiguration]:
    """Return the chain for a named failure scenario."""
    if name not in SCENARIOS:
        raise ConfigurationError(
            f"Unknown scenario {name!r}; expected one of {sorted(SCENARIOS)}."
        )
    return SCENARIOS[name](seed)


def preset(name: str, seed: int | None = None) -> list[ChaosConfiguration]:
    """Return any preset or scenario chain by name."""
    if name not in PRESETS:
        raise ConfigurationError(
            f"Unknown preset {name!r}; expected one of {sorted(PRESETS)}."
        )
    return PRESETS[name](seed)


__all__ = [
    "DETERMINISTIC_SEED",
    "PRESETS",
    "SCENARIOS",
    "deterministic_chaos",
    "extreme_chaos",
    "light_chaos",
    "moderate_chaos",
    "preset",
    "scenario_chaos",
]
