"""Tests for aumai_convchaos.cli — Click command interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from aumai_convchaos.cli import main
from aumai_convchaos.models import Conversation

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_TOTAL_LOSS: dict[str, object] = {
    "mode": "message-loss",
    "parameters": {"lossRate": 1.0},
    "seed": 7,
}


def _write_json(tmp_path: Path, name: str, data: object) -> Path:
    """Write *data* as JSON and return the path."""
    file_path = tmp_path / name
    file_path.write_text(json.dumps(data), encoding="utf-8")
    return file_path


@pytest.fixture()
def conversation_file(tmp_path: Path, conversation: Conversation) -> Path:
    """The ten-message conversation fixture written as camelCase JSON."""
    return _write_json(
        tmp_path, "conversation.json", conversation.model_dump(mode="json", by_alias=True)
    )


@pytest.fixture()
def loss_config_file(tmp_path: Path) -> Path:
    return _write_json(tmp_path, "chaos.json", _TOTAL_LOSS)


# ---------------------------------------------------------------------------
# --version / --help
# ---------------------------------------------------------------------------


class TestVersionFlag:
    def test_version_exits_zero(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0

    def test_version_contains_expected_string(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert "0.1.0" in result.output


class TestHelpFlag:
    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("inject", "validate", "verify"):
            assert command in result.output


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------


class TestVerifyCommand:
    def test_reports_conformance(self) -> None:
        result = CliRunner().invoke(main, ["verify"])
        assert result.exit_code == 0
        assert "399268537" in result.output


# ---------------------------------------------------------------------------
# inject
# ---------------------------------------------------------------------------


class TestInjectCommand:
    def test_json_output(self, conversation_file: Path, loss_config_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            [
                "inject",
                "--conversation", str(conversation_file),
                "--config", str(loss_config_file),
                "--json-output",
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["conversation"]["messages"] == []
        assert payload["result"]["statistics"]["droppedMessages"] == 10
        assert payload["result"]["seed"] == 7
        assert len(payload["timeline"]) == 10

    def test_summary_output(self, conversation_file: Path, loss_config_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            ["inject", "--conversation", str(conversation_file), "--config", str(loss_config_file)],
        )
        assert result.exit_code == 0
        assert "0/10 delivered" in result.output
        assert "Fingerprint" in result.output

    def test_timeline_flag(self, conversation_file: Path, loss_config_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            [
                "inject",
                "--conversation", str(conversation_file),
                "--config", str(loss_config_file),
                "--timeline",
            ],
        )
        assert result.exit_code == 0
        assert result.output.count(" drop ") == 10

    def test_yaml_config_list(self, tmp_path: Path, conversation_file: Path) -> None:
        config_path = tmp_path / "chain.yaml"
        config_path.write_text(
            yaml.safe_dump(
                [
                    {"mode": "delay", "seed": 1, "parameters": {"minDelay": 100, "maxDelay": 100}},
                    {"mode": "reorder", "parameters": {"windowSize": 1, "maxDisplacement": 0}},
                ]
            ),
            encoding="utf-8",
        )
        result = CliRunner().invoke(
            main,
            [
                "inject",
                "--conversation", str(conversation_file),
                "--config", str(config_path),
                "--json-output",
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["result"]["modes"] == ["delay", "reorder"]
        assert payload["result"]["statistics"]["delayedMessages"] == 10

    def test_configs_wrapper(self, tmp_path: Path, conversation_file: Path) -> None:
        config_path = _write_json(tmp_path, "wrapped.json", {"configs": [_TOTAL_LOSS]})
        result = CliRunner().invoke(
            main,
            ["inject", "--conversation", str(conversation_file), "--config", str(config_path)],
        )
        assert result.exit_code == 0

    def test_preset(self, conversation_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            ["inject", "--conversation", str(conversation_file), "--preset", "light", "--seed", "3"],
        )
        assert result.exit_code == 0, result.output
        assert "Seed        : 3" in result.output

    def test_config_and_preset_conflict(
        self, conversation_file: Path, loss_config_file: Path
    ) -> None:
        result = CliRunner().invoke(
            main,
            [
                "inject",
                "--conversation", str(conversation_file),
                "--config", str(loss_config_file),
                "--preset", "light",
            ],
        )
        assert result.exit_code == 2

    def test_missing_config_and_preset(self, conversation_file: Path) -> None:
        result = CliRunner().invoke(main, ["inject", "--conversation", str(conversation_file)])
        assert result.exit_code == 2

    def test_invalid_config_exits_one(self, tmp_path: Path, conversation_file: Path) -> None:
        bad = _write_json(tmp_path, "bad.json", {"mode": "delay", "parameters": {"minDelay": -1}})
        result = CliRunner().invoke(
            main, ["inject", "--conversation", str(conversation_file), "--config", str(bad)]
        )
        assert result.exit_code == 1
        assert "Error loading input" in result.output

    def test_empty_yaml_config_exits_one(self, tmp_path: Path, conversation_file: Path) -> None:
        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")
        result = CliRunner().invoke(
            main, ["inject", "--conversation", str(conversation_file), "--config", str(empty)]
        )
        assert result.exit_code == 1
        assert "Error loading input" in result.output
        assert "NoneType" in result.output

    def test_scalar_config_exits_one(self, tmp_path: Path, conversation_file: Path) -> None:
        scalar = _write_json(tmp_path, "scalar.json", 42)
        result = CliRunner().invoke(
            main, ["inject", "--conversation", str(conversation_file), "--config", str(scalar)]
        )
        assert result.exit_code == 1
        assert "Error loading input" in result.output

    def test_missing_conversation_exits_one(
        self, tmp_path: Path, loss_config_file: Path
    ) -> None:
        result = CliRunner().invoke(
            main,
            [
                "inject",
                "--conversation", str(tmp_path / "absent.json"),
                "--config", str(loss_config_file),
            ],
        )
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidateCommand:
    def test_degenerate_distribution_passes(self, loss_config_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            ["validate", "--config", str(loss_config_file), "--samples", "20", "--messages", "5"],
        )
        assert result.exit_code == 0, result.output
        assert "PASSED" in result.output

    def test_json_output(self, loss_config_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            [
                "validate",
                "--config", str(loss_config_file),
                "--samples", "20",
                "--messages", "5",
                "--json-output",
            ],
        )
        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["degreesOfFreedom"] == 0
        assert report["samples"] == 100
        assert report["trials"] == 20

    def test_summary_shows_trials_and_decisions(self, loss_config_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            ["validate", "--config", str(loss_config_file), "--samples", "20", "--messages", "5"],
        )
        assert "Trials      : 20" in result.output
        assert "Decisions   : 100" in result.output

    def test_empty_yaml_config_exits_one(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.yml"
        empty.write_text("", encoding="utf-8")
        result = CliRunner().invoke(main, ["validate", "--config", str(empty)])
        assert result.exit_code == 1
        assert "Validation error" in result.output

    def test_scalar_config_exits_one(self, tmp_path: Path) -> None:
        scalar = _write_json(tmp_path, "scalar.json", "message-loss")
        result = CliRunner().invoke(main, ["validate", "--config", str(scalar)])
        assert result.exit_code == 1
        assert "Validation error" in result.output

    def test_partition_is_rejected(self, tmp_path: Path) -> None:
        config = _write_json(
            tmp_path,
            "partition.json",
            {"mode": "network-partition", "parameters": {"partitions": [["a"], ["b"]], "duration": 5}},
        )
        result = CliRunner().invoke(main, ["validate", "--config", str(config)])
        assert result.exit_code == 1
        assert "Validation error" in result.output

    def test_chain_is_rejected(self, tmp_path: Path) -> None:
        config = _write_json(tmp_path, "chain.json", [_TOTAL_LOSS, _TOTAL_LOSS])
        result = CliRunner().invoke(main, ["validate", "--config", str(config)])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# --log-level
# ---------------------------------------------------------------------------


class TestLogLevel:
    def test_accepts_lowercase(self) -> None:
        result = CliRunner().invoke(main, ["--log-level", "debug", "verify"])
        assert result.exit_code == 0

    def test_rejects_unknown_level(self) -> None:
        result = CliRunner().invoke(main, ["--log-level", "LOUD", "verify"])
        assert result.exit_code == 2
