"""Synthetic conversations for distribution checks, fixtures and demos."""

from __future__ import annotations

from aumai_convchaos.core import SeededRandom
from aumai_convchaos.models import Agent, Conversation, Message, MessageRole

_AGENT_TYPES = ["coordinator", "worker", "validator", "observer"]
_CAPABILITIES = ["planning", "execution", "review", "search", "summarize"]
_ROLES = [MessageRole.user, MessageRole.assistant, MessageRole.system]
_WORDS = [
    "task", "plan", "result", "check", "update", "agent", "step", "status",
    "request", "response", "data", "review", "confirm", "retry", "done",
]


def synthetic_agents(count: int, rng: SeededRandom | None = None) -> list[Agent]:
    """Return *count* agents with ids ``agent-1`` .. ``agent-N``."""
    rng = rng or SeededRandom(1)
    return [
        Agent(
            id=f"agent-{i + 1}",
            name=f"Agent-{i + 1}",
            type=_AGENT_TYPES[i % len(_AGENT_TYPES)],
            capabilities=rng.sample(_CAPABILITIES, 2),
        )
        for i in range(count)
    ]


def synthetic_conversation(
    message_count: int = 100,
    agent_count: int = 4,
    seed: int = 1,
    base_timestamp: float = 1_700_000_000_000.0,
    threaded: bool = True,
) -> Conversation:
    """Build a deterministic round-robin conversation.

    Agents speak in turn, timestamps advance by 100-2000 ms, and when
    *threaded* each message replies to the one before it.
    """
    if agent_count < 1:
        raise ValueError(f"agent_count must be >= 1, got {agent_count}.")
    rng = SeededRandom(seed)
    agents = synthetic_agents(agent_count, rng)
    messages: list[Message] = []
    timestamp = base_timestamp
    for i in range(message_count):
        timestamp += rng.next_int(100, 2000)
        words = [rng.choice(_WORDS) for _ in range(rng.next_int(3, 12))]
        messages.append(
            Message(
                id=f"msg-{i + 1}",
                agent_id=agents[i % agent_count].id,
                content=" ".join(words),
                timestamp=timestamp,
                parent_message_id=messages[-1].id if threaded and messages else None,
                role=rng.choice(_ROLES),
            )
        )
    return Conversation(
        id=f"conv-{seed}",
        agents=agents,
        messages=messages,
        start_time=base_timestamp,
        end_time=messages[-1].timestamp if messages else base_timestamp,
    )


__all__ = ["synthetic_agents", "synthetic_conversation"]
