"""Shared pytest fixtures for aumai-convchaos test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from aumai_convchaos.core import SeededRandom
from aumai_convchaos.factory import synthetic_conversation
from aumai_convchaos.injector import ChaosInjector
from aumai_convchaos.models import (
    Agent,
    Conversation,
    DelayConfig,
    DelayParameters,
    Message,
    MessageLossConfig,
    MessageLossParameters,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_conversation(
    message_count: int = 10,
    agent_ids: tuple[str, ...] = ("alice", "bob"),
    threaded: bool = False,
    step: float = 1000.0,
) -> Conversation:
    """Round-robin conversation with timestamps 1000, 2000, ..."""
    agents = [Agent(id=agent_id, name=agent_id.title(), type="worker") for agent_id in agent_ids]
    messages: list[Message] = []
    for i in range(message_count):
        messages.append(
            Message(
                id=f"m{i}",
                agent_id=agent_ids[i % len(agent_ids)],
                content=f"message number {i} from {agent_ids[i % len(agent_ids)]}",
                timestamp=step * (i + 1),
                parent_message_id=messages[-1].id if threaded and messages else None,
            )
        )
    return Conversation(id="conv-test", agents=agents, messages=messages, start_time=0.0)


# ---------------------------------------------------------------------------
# Core object fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def rng() -> SeededRandom:
    """A generator seeded with 42."""
    return SeededRandom(42)


@pytest.fixture()
def injector() -> ChaosInjector:
    """An injector with a fixed fallback seed."""
    return ChaosInjector(default_seed=1)


# ---------------------------------------------------------------------------
# Conversation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def conversation_builder() -> Callable[..., Conversation]:
    """Expose :func:`make_conversation` to tests that need custom sizes."""
    return make_conversation


@pytest.fixture()
def conversation() -> Conversation:
    """Ten messages, alternating between two agents, no reply links."""
    return make_conversation()


@pytest.fixture()
def threaded_conversation() -> Conversation:
    """Ten messages where each replies to the previous one."""
    return make_conversation(threaded=True)


@pytest.fixture()
def synthetic() -> Conversation:
    """The canonical 100-message, 4-agent synthetic conversation."""
    return synthetic_conversation()


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def total_loss_config() -> MessageLossConfig:
    """Drops every message."""
    return MessageLossConfig(seed=7, parameters=MessageLossParameters(loss_rate=1.0))


@pytest.fixture()
def half_loss_config() -> MessageLossConfig:
    return MessageLossConfig(seed=42, parameters=MessageLossParameters(loss_rate=0.5))


@pytest.fixture()
def fixed_delay_config() -> DelayConfig:
    """Delays every message by exactly 100 ms."""
    return DelayConfig(seed=1, parameters=DelayParameters(min_delay=100, max_delay=100))


@pytest.fixture()
def uniform_delay_config() -> DelayConfig:
    return DelayConfig(parameters=DelayParameters(min_delay=100, max_delay=2000))
