"""aumai-convchaos quickstart — working demonstrations of the major features.

Run this file directly to verify your installation:

    python examples/quickstart.py

Each demo is self-contained and works on a synthetic multi-agent
conversation, so no input files are needed.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from aumai_convchaos import (
    ChaosInjector,
    ChaosMode,
    ConfigurationError,
    DelayConfig,
    DelayParameters,
    Message,
    MessageLossConfig,
    MessageLossParameters,
    NetworkPartitionConfig,
    NetworkPartitionParameters,
    ReorderConfig,
    ReorderParameters,
    SeededRandom,
    validate_distribution,
)
from aumai_convchaos.factory import synthetic_conversation
from aumai_convchaos.presets import extreme_chaos, preset


# ---------------------------------------------------------------------------
# Demo 1 — The seeded generator
# ---------------------------------------------------------------------------

def demo_seeded_random() -> None:
    """Show that equal seeds give equal streams."""

    print("\n=== Demo 1: SeededRandom ===")

    first = SeededRandom(12345)
    second = SeededRandom(12345)
    rolls = [first.next_int(1, 6) for _ in range(5)]
    assert rolls == [second.next_int(1, 6) for _ in range(5)]
    print(f"  dice rolls from seed 12345: {rolls}")
    print(f"  shuffled: {SeededRandom(7).shuffle(['a', 'b', 'c', 'd'])}")
    print(f"  uuid-shaped id: {SeededRandom(7).uuid()}")

    assert SeededRandom.verify(), "generator failed the conformance check"
    print(f"  conformance: state {SeededRandom.CHECK_STATE} after 10000 draws")
    print("  Demo 1 passed.")


# ---------------------------------------------------------------------------
# Demo 2 — Composing a chaos chain
# ---------------------------------------------------------------------------

def demo_chain() -> None:
    """Drop, delay and reorder the same conversation in one run."""

    print("\n=== Demo 2: Chaos chain ===")

    conversation = synthetic_conversation(message_count=50, agent_count=3)
    configs = [
        MessageLossConfig(seed=42, parameters=MessageLossParameters(loss_rate=0.1)),
        DelayConfig(parameters=DelayParameters(min_delay=100, max_delay=1500)),
        ReorderConfig(parameters=ReorderParameters(window_size=4, max_displacement=3)),
    ]

    injector = ChaosInjector()
    mutated, result, timeline = injector.inject(conversation, configs)
    stats = result.statistics

    print(f"  delivered {len(mutated.messages)}/{stats.total_messages} messages")
    print(f"  dropped={stats.dropped_messages} delayed={stats.delayed_messages} "
          f"reordered={stats.reordered_messages}")
    print(f"  timeline entries: {len(timeline)}")
    print(f"  fingerprint: {result.fingerprint[:16]}...")

    replay = injector.inject(conversation, configs)
    assert replay.result.fingerprint == result.fingerprint
    assert replay.conversation == mutated
    print("  replay with the same seed is identical.")
    print("  Demo 2 passed.")


# ---------------------------------------------------------------------------
# Demo 3 — Network partition
# ---------------------------------------------------------------------------

def demo_partition() -> None:
    """Cut four agents into two groups and hold cross-group replies."""

    print("\n=== Demo 3: Network partition ===")

    conversation = synthetic_conversation(message_count=20, agent_count=4)
    start = conversation.messages[0].timestamp
    config = NetworkPartitionConfig(
        parameters=NetworkPartitionParameters(
            partitions=[["agent-1", "agent-2"], ["agent-3", "agent-4"]],
            duration=10_000,
            allow_partial_delivery=True,
        )
    )
    mutated, result, timeline = ChaosInjector(default_seed=1).inject(conversation, [config])

    held = [entry.details["messageId"] for entry in timeline if entry.action == "delay"]
    print(f"  held until the partition healed: {held}")
    released = {m.id: m.timestamp for m in mutated.messages}
    assert all(released[message_id] == start + 10_000 for message_id in held)
    assert result.statistics.delayed_messages == len(held)
    print("  Demo 3 passed.")


# ---------------------------------------------------------------------------
# Demo 4 — Presets
# ---------------------------------------------------------------------------

def demo_presets() -> None:
    """Run the built-in chains and reject an unknown name."""

    print("\n=== Demo 4: Presets ===")

    conversation = synthetic_conversation()
    injector = ChaosInjector()
    for name in ("light", "moderate", "network-unreliable"):
        _, result, _ = injector.inject(conversation, preset(name, seed=2024))
        print(f"  {name:<20} modified {result.statistics.modified_messages:>3} messages")

    chain = extreme_chaos(seed=2024, partitions=[["agent-1", "agent-2"], ["agent-3", "agent-4"]])
    _, result, _ = injector.inject(conversation, chain)
    print(f"  {'extreme':<20} modified {result.statistics.modified_messages:>3} messages")

    try:
        preset("meteor-shower")
    except ConfigurationError as exc:
        print(f"  unknown preset rejected: {exc}")
    print("  Demo 4 passed.")


# ---------------------------------------------------------------------------
# Demo 5 — Distribution validation
# ---------------------------------------------------------------------------

def demo_validation() -> None:
    """Chi-square check that message loss honours its configured rate."""

    print("\n=== Demo 5: Distribution validation ===")

    report = validate_distribution(
        ChaosMode.message_loss,
        MessageLossParameters(loss_rate=0.3),
        samples=2000,
        messages_per_trial=10,
    )
    print(f"  observed drop fraction: {report.observed_fraction('dropped'):.3f}")
    print(f"  chi-square {report.chi_square:.3f} vs critical {report.critical_value:.3f}")
    print(f"  passed: {report.passed}")
    print("  Demo 5 passed.")


# ---------------------------------------------------------------------------
# Demo 6 — Streaming
# ---------------------------------------------------------------------------

async def _live_feed(messages: list[Message]) -> AsyncIterator[Message]:
    for message in messages:
        await asyncio.sleep(0)
        yield message


async def _consume_stream() -> None:
    conversation = synthetic_conversation(message_count=30)
    config = MessageLossConfig(seed=5, parameters=MessageLossParameters(loss_rate=0.2))
    stream = ChaosInjector().inject_stream(_live_feed(conversation.messages), [config])

    delivered = [message.id async for message in stream]
    print(f"  streamed {len(delivered)} of {len(conversation.messages)} messages")
    print(f"  dropped in flight: {stream.result.statistics.dropped_messages}")

    batch, _, _ = ChaosInjector().inject(conversation, [config])
    assert delivered == [message.id for message in batch.messages]


def demo_streaming() -> None:
    """Apply message loss to an async source as messages arrive."""

    print("\n=== Demo 6: Streaming ===")
    asyncio.run(_consume_stream())
    print("  Demo 6 passed.")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Run all quickstart demos in sequence."""
    print("aumai-convchaos quickstart demos")
    print("=" * 45)

    demo_seeded_random()
    demo_chain()
    demo_partition()
    demo_presets()
    demo_validation()
    demo_streaming()

    print("\n" + "=" * 45)
    print("All demos completed successfully.")


if __name__ == "__main__":
    main()
