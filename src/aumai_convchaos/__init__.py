"""aumai-convchaos: Deterministic chaos injection for multi-agent conversation logs."""

from aumai_convchaos.core import (
    ConfigurationError,
    ConvChaosError,
    EmptyInputError,
    RangeError,
    SeededRandom,
)
from aumai_convchaos.injector import (
    ChaosInjector,
    ChaosStream,
    InjectionOutcome,
    fingerprint,
    parse_configuration,
)
from aumai_convchaos.models import (
    Agent,
    AgentFailureConfig,
    AgentFailureParameters,
    ChaosConfiguration,
    ChaosMode,
    ChaosResult,
    ChaosStatistics,
    ChaosTimelineEntry,
    Conversation,
    CorruptionConfig,
    CorruptionParameters,
    DelayConfig,
    DelayParameters,
    DistributionReport,
    Message,
    MessageLossConfig,
    MessageLossParameters,
    NetworkPartitionConfig,
    NetworkPartitionParameters,
    ReorderConfig,
    ReorderParameters,
)
from aumai_convchaos.modes import apply_mode
from aumai_convchaos.timeline import TimelineRecorder
from aumai_convchaos.validator import validate_distribution

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentFailureConfig",
    "AgentFailureParameters",
    "ChaosConfiguration",
    "ChaosInjector",
    "ChaosMode",
    "ChaosResult",
    "ChaosStatistics",
    "ChaosStream",
    "ChaosTimelineEntry",
    "ConfigurationError",
    "ConvChaosError",
    "Conversation",
    "CorruptionConfig",
    "CorruptionParameters",
    "DelayConfig",
    "DelayParameters",
    "DistributionReport",
    "EmptyInputError",
    "InjectionOutcome",
    "Message",
    "MessageLossConfig",
    "MessageLossParameters",
    "NetworkPartitionConfig",
    "NetworkPartitionParameters",
    "RangeError",
    "ReorderConfig",
    "ReorderParameters",
    "SeededRandom",
    "TimelineRecorder",
    "apply_mode",
    "fingerprint",
    "parse_configuration",
    "validate_distribution",
]
