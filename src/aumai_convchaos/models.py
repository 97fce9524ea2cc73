"""Pydantic models for aumai-convchaos."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _Model(BaseModel):
    """Snake_case in Python, camelCase accepted and emitted on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenModel(_Model):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class MessageRole(str, Enum):
    """Speaker role of a message, when the source format records one."""

    user = "user"
    assistant = "assistant"
    system = "system"
    function = "function"


class Message(_FrozenModel):
    """A single timestamped message sent by one agent."""

    id: str
    agent_id: str
    content: str
    timestamp: float
    parent_message_id: str | None = None
    role: MessageRole | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Agent(_FrozenModel):
    """A participant in a multi-agent conversation."""

    id: str
    name: str
    type: str
    capabilities: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class Conversation(_Model):
    """An ordered message log plus the agents that produced it.

    Every ``message.agent_id`` must name a known agent.  Input timestamps are
    expected to be non-decreasing; chaos output may deliberately break that.
    """

    id: str
    format: str = "custom"
    agents: list[Agent] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    start_time: float = 0.0
    end_time: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_references(self) -> Conversation:
        agent_ids = {agent.id for agent in self.agents}
        if len(agent_ids) != len(self.agents):
            raise ValueError("Agent ids must be unique.")
        message_ids = {message.id for message in self.messages}
        if len(message_ids) != len(self.messages):
            raise ValueError("Message ids must be unique.")
        for message in self.messages:
            if message.agent_id not in agent_ids:
                raise ValueError(
                    f"Message {message.id!r} references unknown agent "
                    f"{message.agent_id!r}."
                )
        return self

    def agent_ids(self) -> list[str]:
        return [agent.id for agent in self.agents]


# ---------------------------------------------------------------------------
# Chaos parameters
# ---------------------------------------------------------------------------


class ChaosMode(str, Enum):
    """The six supported chaos modes."""

    message_loss = "message-loss"
    delay = "delay"
    reorder = "reorder"
    corruption = "corruption"
    agent_failure = "agent-failure"
    network_partition = "network-partition"


class LossPattern(str, Enum):
    random = "random"
    burst = "burst"
    selective = "selective"


class DelayDistribution(str, Enum):
    uniform = "uniform"
    normal = "normal"
    exponential = "exponential"


class CorruptionType(str, Enum):
    truncate = "truncate"
    scramble = "scramble"
    replace = "replace"
    inject = "inject"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class FailureType(str, Enum):
    crash = "crash"
    timeout = "timeout"
    slow = "slow"
    byzantine = "byzantine"


Rate = Annotated[float, Field(ge=0.0, le=1.0)]


class MessageLossParameters(_FrozenModel):
    loss_rate: Rate
    pattern: LossPattern = LossPattern.random
    target_agents: list[str] | None = None


class DelayParameters(_FrozenModel):
    """Delay bounds are milliseconds added to message timestamps."""

    min_delay: float = Field(ge=0.0)
    max_delay: float = Field(ge=0.0)
    distribution: DelayDistribution = DelayDistribution.uniform
    target_agents: list[str] | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> DelayParameters:
        if self.min_delay > self.max_delay:
            raise ValueError(
                f"min_delay ({self.min_delay}) must be <= max_delay ({self.max_delay})."
            )
        return self


class ReorderParameters(_FrozenModel):
    window_size: int = Field(ge=0)
    max_displacement: int = Field(ge=0)
    preserve_causality: bool = True


class CorruptionParameters(_FrozenModel):
    corruption_rate: Rate
    corruption_type: CorruptionType
    severity: Severity = Severity.medium


class AgentFailureParameters(_FrozenModel):
    failure_rate: Rate
    failure_type: FailureType
    duration: float = Field(default=5000.0, ge=0.0)
    target_agents: list[str] | None = None


class NetworkPartitionParameters(_FrozenModel):
    partitions: list[list[str]]
    duration: float = Field(ge=0.0)
    allow_partial_delivery: bool = False

    @model_validator(mode="after")
    def _check_disjoint(self) -> NetworkPartitionParameters:
        seen: set[str] = set()
        for group in self.partitions:
            for agent_id in group:
                if agent_id in seen:
                    raise ValueError(
                        f"Agent {agent_id!r} appears in more than one partition."
                    )
                seen.add(agent_id)
        return self


# ---------------------------------------------------------------------------
# Chaos configuration (tagged union on ``mode``)
# ---------------------------------------------------------------------------


class _ConfigBase(_FrozenModel):
    seed: int | None = None
    probability: Rate | None = None


class MessageLossConfig(_ConfigBase):
    mode: Literal["message-loss"] = "message-loss"
    parameters: MessageLossParameters


class DelayConfig(_ConfigBase):
    mode: Literal["delay"] = "delay"
    parameters: DelayParameters


class ReorderConfig(_ConfigBase):
    mode: Literal["reorder"] = "reorder"
    parameters: ReorderParameters


class CorruptionConfig(_ConfigBase):
    mode: Literal["corruption"] = "corruption"
    parameters: CorruptionParameters


class AgentFailureConfig(_ConfigBase):
    mode: Literal["agent-failure"] = "agent-failure"
    parameters: AgentFailureParameters


class NetworkPartitionConfig(_ConfigBase):
    mode: Literal["network-partition"] = "network-partition"
    parameters: NetworkPartitionParameters


ChaosConfiguration = Annotated[
    Union[
        MessageLossConfig,
        DelayConfig,
        ReorderConfig,
        CorruptionConfig,
        AgentFailureConfig,
        NetworkPartitionConfig,
    ],
    Field(discriminator="mode"),
]

ChaosParameters = Union[
    MessageLossParameters,
    DelayParameters,
    ReorderParameters,
    CorruptionParameters,
    AgentFailureParameters,
    NetworkPartitionParameters,
]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ChaosStatistics(_FrozenModel):
    """Counts describing what a chaos run did to a conversation."""

    total_messages: int = 0
    modified_messages: int = 0
    dropped_messages: int = 0
    delayed_messages: int = 0
    reordered_messages: int = 0
    corrupted_messages: int = 0
    average_delay: float | None = None
    max_delay: float | None = None


class ChaosResult(_FrozenModel):
    """Summary of an injection run.  The mutated conversation travels separately."""

    mode: ChaosMode
    modes: list[ChaosMode] = Field(default_factory=list)
    seed: int
    affected_messages: int
    affected_agents: list[str] = Field(default_factory=list)
    statistics: ChaosStatistics
    fingerprint: str = ""


class ChaosTimelineEntry(_FrozenModel):
    """One discrete mutation decision, in processing order."""

    timestamp: float
    message_index: int
    mode: ChaosMode
    action: str
    details: dict[str, Any] = Field(default_factory=dict)


class DistributionReport(_FrozenModel):
    """Outcome of a chi-square goodness-of-fit run over one chaos mode.

    ``trials`` is the number of synthetic runs; ``samples`` is the number of
    categorised decisions collected across them.
    """

    mode: ChaosMode
    categories: list[str]
    expected: list[float]
    actual: list[int]
    chi_square: float
    degrees_of_freedom: int
    critical_value: float
    significance: float
    trials: int
    samples: int
    passed: bool

    def observed_fraction(self, category: str) -> float:
        """Share of observations that fell into *category*."""
        total = sum(self.actual)
        if total == 0:
            return 0.0
        return self.actual[self.categories.index(category)] / total


__all__ = [
    "Agent",
    "AgentFailureConfig",
    "AgentFailureParameters",
    "ChaosConfiguration",
    "ChaosMode",
    "ChaosParameters",
    "ChaosResult",
    "ChaosStatistics",
    "ChaosTimelineEntry",
    "Conversation",
    "CorruptionConfig",
    "CorruptionParameters",
    "CorruptionType",
    "DelayConfig",
    "DelayDistribution",
    "DelayParameters",
    "DistributionReport",
    "FailureType",
    "LossPattern",
    "Message",
    "MessageLossConfig",
    "MessageLossParameters",
    "MessageRole",
    "NetworkPartitionConfig",
    "NetworkPartitionParameters",
    "ReorderConfig",
    "ReorderParameters",
    "Severity",
]
