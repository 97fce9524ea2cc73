"""Tests for aumai_convchaos.presets and aumai_convchaos.factory."""

from __future__ import annotations

import pytest

from aumai_convchaos.core import ConfigurationError, SeededRandom
from aumai_convchaos.factory import synthetic_agents, synthetic_conversation
from aumai_convchaos.injector import ChaosInjector
from aumai_convchaos.models import ChaosMode, Conversation, NetworkPartitionConfig
from aumai_convchaos.presets import (
    DETERMINISTIC_SEED,
    PRESETS,
    SCENARIOS,
    deterministic_chaos,
    extreme_chaos,
    light_chaos,
    moderate_chaos,
    preset,
    scenario_chaos,
)

# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------


class TestPresets:
    def test_light(self) -> None:
        chain = light_chaos(seed=3)
        assert [config.mode for config in chain] == ["message-loss", "delay"]
        assert chain[0].seed == 3

    def test_moderate_has_four_steps(self) -> None:
        assert len(moderate_chaos()) == 4

    def test_extreme_without_partitions(self) -> None:
        modes = [config.mode for config in extreme_chaos()]
        assert ChaosMode.network_partition.value not in modes
        assert len(modes) == 5

    def test_extreme_with_partitions(self) -> None:
        chain = extreme_chaos(partitions=[["agent-1"], ["agent-2"]])
        assert isinstance(chain[-1], NetworkPartitionConfig)

    def test_deterministic_seeds(self) -> None:
        seeds = [config.seed for config in deterministic_chaos()]
        assert seeds == [DETERMINISTIC_SEED, DETERMINISTIC_SEED + 1, DETERMINISTIC_SEED + 2]

    def test_deterministic_ignores_seed_argument(self) -> None:
        assert preset("deterministic", seed=9) == deterministic_chaos()

    def test_scenarios_are_presets(self) -> None:
        assert set(SCENARIOS) <= set(PRESETS)

    def test_scenario_seed_applies_to_first_step(self) -> None:
        assert scenario_chaos("network-unreliable", 5)[0].seed == 5

    def test_unknown_scenario_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            scenario_chaos("solar-flare")

    def test_unknown_preset_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown preset"):
            preset("nope")

    @pytest.mark.parametrize("name", sorted(PRESETS))
    def test_every_preset_is_reproducible(self, name: str, synthetic: Conversation) -> None:
        injector = ChaosInjector()
        first = injector.inject(synthetic, preset(name, seed=11))
        second = injector.inject(synthetic, preset(name, seed=11))
        assert first.result.fingerprint == second.result.fingerprint
        assert first.conversation == second.conversation

    def test_extreme_with_partitions_runs(self, synthetic: Conversation) -> None:
        chain = extreme_chaos(
            seed=4, partitions=[["agent-1", "agent-2"], ["agent-3", "agent-4"]]
        )
        _, result, _ = ChaosInjector().inject(synthetic, chain)
        assert result.modes[-1] == ChaosMode.network_partition
        assert result.statistics.total_messages == 100


# ---------------------------------------------------------------------------
# Synthetic conversations
# ---------------------------------------------------------------------------


class TestSyntheticConversation:
    def test_shape(self, synthetic: Conversation) -> None:
        assert len(synthetic.messages) == 100
        assert synthetic.agent_ids() == ["agent-1", "agent-2", "agent-3", "agent-4"]
        assert synthetic.id == "conv-1"

    def test_round_robin_speakers(self) -> None:
        conversation = synthetic_conversation(message_count=6, agent_count=3)
        speakers = [message.agent_id for message in conversation.messages]
        assert speakers == ["agent-1", "agent-2", "agent-3"] * 2

    def test_threaded_replies(self, synthetic: Conversation) -> None:
        messages = synthetic.messages
        assert messages[0].parent_message_id is None
        assert all(
            later.parent_message_id == earlier.id
            for earlier, later in zip(messages, messages[1:])
        )

    def test_unthreaded(self) -> None:
        conversation = synthetic_conversation(message_count=5, threaded=False)
        assert all(message.parent_message_id is None for message in conversation.messages)

    def test_timestamps_increase(self, synthetic: Conversation) -> None:
        stamps = [message.timestamp for message in synthetic.messages]
        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert all(100 <= gap <= 2000 for gap in gaps)
        assert synthetic.end_time == stamps[-1]

    def test_deterministic(self) -> None:
        assert synthetic_conversation(seed=8) == synthetic_conversation(seed=8)

    def test_empty(self) -> None:
        conversation = synthetic_conversation(message_count=0)
        assert conversation.messages == []
        assert conversation.end_time == conversation.start_time

    def test_zero_agents_raises(self) -> None:
        with pytest.raises(ValueError):
            synthetic_conversation(agent_count=0)

    def test_agents_have_two_capabilities(self) -> None:
        agents = synthetic_agents(3, SeededRandom(2))
        assert [agent.id for agent in agents] == ["agent-1", "agent-2", "agent-3"]
        assert all(len(agent.capabilities) == 2 for agent in agents)
