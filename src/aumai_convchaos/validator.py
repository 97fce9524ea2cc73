"""Chi-square certification of chaos mode distributions.

A mode is run for many trials over the canonical synthetic conversation and
the raw outcome of every random decision is bucketed into categories whose
expected share follows from the configured parameters.  The chi-square
statistic over those buckets is compared against the critical value for
``k - 1`` degrees of freedom.

All trials draw from ONE generator seeded once with ``seed``.  Fresh
generators with consecutive seeds are not used: Park-Miller first draws from
small consecutive seeds are strongly correlated and would bias the buckets.

Functions
---------
critical_value
    Chi-square critical value for a degrees-of-freedom / significance pair.
chi_square
    Pearson statistic over observed and expected counts.
validate_distribution
    Run a mode repeatedly and return a :class:`DistributionReport`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from aumai_convchaos.core import ConfigurationError, SeededRandom
from aumai_convchaos.factory import synthetic_conversation
from aumai_convchaos.injector import parse_configuration
from aumai_convchaos.models import (
    AgentFailureParameters,
    ChaosMode,
    ChaosParameters,
    CorruptionParameters,
    DelayDistribution,
    DelayParameters,
    DistributionReport,
    LossPattern,
    MessageLossParameters,
    ReorderParameters,
)
from aumai_convchaos.modes import apply_mode, round_half_up
from aumai_convchaos.settings import get_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DELAY_BINS = 10

# Upper-tail critical values, df = 1..30.
_CRITICAL_VALUES: dict[float, tuple[float, ...]] = {
    0.10: (
        2.706, 4.605, 6.251, 7.779, 9.236, 10.645, 12.017, 13.362, 14.684, 15.987,
        17.275, 18.549, 19.812, 21.064, 22.307, 23.542, 24.769, 25.989, 27.204, 28.412,
        29.615, 30.813, 32.007, 33.196, 34.382, 35.563, 36.741, 37.916, 39.087, 40.256,
    ),
    0.05: (
        3.841, 5.991, 7.815, 9.488, 11.070, 12.592, 14.067, 15.507, 16.919, 18.307,
        19.675, 21.026, 22.362, 23.685, 24.996, 26.296, 27.587, 28.869, 30.144, 31.410,
        32.671, 33.924, 35.172, 36.415, 37.652, 38.885, 40.113, 41.337, 42.557, 43.773,
    ),
    0.01: (
        6.635, 9.210, 11.345, 13.277, 15.086, 16.812, 18.475, 20.090, 21.666, 23.209,
        24.725, 26.217, 27.688, 29.141, 30.578, 32.000, 33.409, 34.805, 36.191, 37.566,
        38.932, 40.289, 41.638, 42.980, 44.314, 45.642, 46.963, 48.278, 49.588, 50.892,
    ),
}

# Standard normal upper quantiles for the Wilson-Hilferty approximation.
_Z_SCORES: dict[float, float] = {0.10: 1.2816, 0.05: 1.6449, 0.01: 2.3263}


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def critical_value(degrees_of_freedom: int, significance: float = 0.05) -> float:
    """Return the chi-square critical value.

    Tabulated for 1..30 degrees of freedom, Wilson-Hilferty beyond.

    Raises:
        ConfigurationError: for an unsupported significance level or
            ``degrees_of_freedom < 1``.
    """
    if significance not in _CRITICAL_VALUES:
        raise ConfigurationError(
            f"Significance must be one of {sorted(_CRITICAL_VALUES)}, got {significance}."
        )
    if degrees_of_freedom < 1:
        raise ConfigurationError(
            f"Degrees of freedom must be >= 1, got {degrees_of_freedom}."
        )
    table = _CRITICAL_VALUES[significance]
    if degrees_of_freedom <= len(table):
        return table[degrees_of_freedom - 1]
    k = float(degrees_of_freedom)
    z = _Z_SCORES[significance]
    return k * (1.0 - 2.0 / (9.0 * k) + z * math.sqrt(2.0 / (9.0 * k))) ** 3


def chi_square(observed: list[int], expected: list[float]) -> float:
    """Pearson chi-square.  Observations in a zero-expectation bucket give inf."""
    total = 0.0
    for obs, exp in zip(observed, expected, strict=True):
        if exp <= 0.0:
            if obs > 0:
                return math.inf
            continue
        total += (obs - exp) ** 2 / exp
    return total


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------

_Buckets = tuple[list[str], list[float], list[int]]


def _binary(samples: list[Any], rate: float, hit: str, miss: str) -> _Buckets:
    n = len(samples)
    hits = sum(1 for sample in samples if sample)
    return [hit, miss], [rate * n, (1.0 - rate) * n], [hits, n - hits]


def _uniform_ints(samples: list[Any], low: int, high: int) -> _Buckets:
    values = list(range(low, high + 1))
    share = len(samples) / len(values)
    counts = {value: 0 for value in values}
    for sample in samples:
        counts[sample] += 1
    return [str(v) for v in values], [share] * len(values), [counts[v] for v in values]


def _delay_probabilities(params: DelayParameters) -> list[float]:
    low, high = params.min_delay, params.max_delay
    if params.distribution == DelayDistribution.uniform:
        return [1.0 / DELAY_BINS] * DELAY_BINS

    cdf: Callable[[float], float]
    if params.distribution == DelayDistribution.normal:
        mean, std = (low + high) / 2, (high - low) / 6

        def cdf(x: float) -> float:
            return 0.5 * (1.0 + math.erf((x - mean) / (std * math.sqrt(2.0))))

    else:
        rate = 1.0 / ((low + high) / 2)

        def cdf(x: float) -> float:
            return 1.0 - math.exp(-rate * x) if x > 0 else 0.0

    width = (high - low) / DELAY_BINS
    # clamped mass lands in the outer bins
    cuts = [0.0] + [cdf(low + i * width) for i in range(1, DELAY_BINS)] + [1.0]
    return [cuts[i + 1] - cuts[i] for i in range(DELAY_BINS)]


def _delay_buckets(samples: list[float], params: DelayParameters) -> _Buckets:
    low, high = params.min_delay, params.max_delay
    n = len(samples)
    if low == high:
        return [f"{low:g}"], [float(n)], [n]
    width = (high - low) / DELAY_BINS
    counts = [0] * DELAY_BINS
    for offset in samples:
        counts[min(max(int((offset - low) / width), 0), DELAY_BINS - 1)] += 1
    labels = [f"[{low + i * width:g},{low + (i + 1) * width:g})" for i in range(DELAY_BINS)]
    return labels, [p * n for p in _delay_probabilities(params)], counts


def _bucket(parameters: ChaosParameters, samples: list[Any]) -> _Buckets:
    if isinstance(parameters, MessageLossParameters):
        if parameters.pattern == LossPattern.burst:
            upper = max(1, round_half_up(1.0 / parameters.loss_rate))
            return _uniform_ints(samples, 1, upper)
        return _binary(samples, parameters.loss_rate, "dropped", "kept")
    if isinstance(parameters, DelayParameters):
        return _delay_buckets(samples, parameters)
    if isinstance(parameters, ReorderParameters):
        return _uniform_ints(samples, 0, parameters.max_displacement)
    if isinstance(parameters, CorruptionParameters):
        return _binary(samples, parameters.corruption_rate, "corrupted", "intact")
    if isinstance(parameters, AgentFailureParameters):
        return _binary(samples, parameters.failure_rate, "failed", "healthy")
    raise ConfigurationError(
        f"{type(parameters).__name__} has no random distribution to validate."
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_distribution(
    mode: ChaosMode | str,
    parameters: ChaosParameters | Mapping[str, Any],
    samples: int | None = None,
    *,
    seed: int | None = None,
    messages_per_trial: int | None = None,
    agents: int | None = None,
    significance: float | None = None,
) -> DistributionReport:
    """Certify that *mode* honours its configured distribution.

    Args:
        mode:               The chaos mode under test.
        parameters:         Its parameters (model or plain mapping).
        samples:            Number of trials; defaults to settings.
        seed:               Seed of the single long-run generator.
        messages_per_trial: Size of the synthetic conversation.
        agents:             Number of synthetic agents.
        significance:       0.10, 0.05 or 0.01.

    Raises:
        ConfigurationError: for invalid parameters, a mode/parameter
            mismatch, network-partition (deterministic), or a setup in which
            no random decision is made.
    """
    settings = get_settings()
    trials = samples if samples is not None else settings.validator_trials
    if trials < 1:
        raise ConfigurationError(f"samples must be >= 1, got {trials}.")
    mode = ChaosMode(mode)
    config = parse_configuration({"mode": mode.value, "parameters": parameters})
    params = config.parameters
    alpha = significance if significance is not None else settings.significance
    if mode == ChaosMode.network_partition:
        raise ConfigurationError("network-partition draws nothing and has no distribution.")

    conversation = synthetic_conversation(
        message_count=messages_per_trial or settings.validator_messages,
        agent_count=agents or settings.validator_agents,
        seed=settings.validator_seed,
    )
    agent_ids = conversation.agent_ids()
    rng = SeededRandom(seed if seed is not None else settings.validator_seed)
    collected: list[Any] = []
    for _ in range(trials):
        collected.extend(apply_mode(params, conversation.messages, rng, agent_ids).samples)
    if not collected:
        raise ConfigurationError(
            f"{mode.value} made no random decisions over the synthetic input; "
            "check target_agents against agent-1..agent-N."
        )

    categories, expected, actual = _bucket(params, collected)
    statistic = chi_square(actual, expected)
    degrees = sum(1 for value in expected if value > 0) - 1
    if degrees < 1:
        threshold = 0.0
        passed = statistic == 0.0
    else:
        threshold = critical_value(degrees, alpha)
        passed = statistic < threshold

    logger.info(
        "%s over %d trials: chi2=%.3f df=%d critical=%.3f passed=%s",
        mode.value,
        trials,
        statistic,
        degrees,
        threshold,
        passed,
    )
    return DistributionReport(
        mode=mode,
        categories=categories,
        expected=expected,
        actual=actual,
        chi_square=statistic,
        degrees_of_freedom=max(degrees, 0),
        critical_value=threshold,
        significance=alpha,
        trials=trials,
        samples=len(collected),
        passed=passed,
    )


__all__ = ["DELAY_BINS", "chi_square", "critical_value", "validate_distribution"]
