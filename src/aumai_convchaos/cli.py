"""CLI entry point for aumai-convchaos."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import ValidationError

from aumai_convchaos import __version__
from aumai_convchaos.core import ConfigurationError, ConvChaosError, SeededRandom
from aumai_convchaos.injector import ChaosInjector, parse_configuration
from aumai_convchaos.models import ChaosConfiguration, Conversation
from aumai_convchaos.presets import PRESETS, preset
from aumai_convchaos.settings import get_settings
from aumai_convchaos.validator import validate_distribution

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_document(path: str) -> Any:
    """Load a YAML or JSON document."""
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    if file_path.suffix in (".yaml", ".yml"):
        return yaml.safe_load(raw)
    return json.loads(raw)


def _load_configs(path: str) -> list[ChaosConfiguration]:
    """Accept a single configuration, a list, or ``{"configs": [...]}``."""
    data = _load_document(path)
    if isinstance(data, dict) and "configs" in data:
        data = data["configs"]
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ConfigurationError(
            f"{path}: expected a configuration, a list of configurations or "
            f"{{'configs': [...]}}, got {type(data).__name__}."
        )
    return [parse_configuration(item) for item in data]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the log level.  [default: CONVCHAOS_LOG_LEVEL or WARNING]",
)
def main(log_level: str | None) -> None:
    """AumAI ConvChaos: deterministic chaos injection for agent conversations."""
    level = (log_level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("inject")
@click.option(
    "--conversation",
    "conversation_path",
    required=True,
    metavar="PATH",
    help="Conversation document (YAML or JSON).",
)
@click.option("--config", "config_path", metavar="PATH", help="Chaos configuration file.")
@click.option(
    "--preset",
    "preset_name",
    type=click.Choice(sorted(PRESETS)),
    help="Use a built-in configuration chain instead of --config.",
)
@click.option("--seed", type=int, default=None, help="Seed used when no configuration carries one.")
@click.option("--json-output", is_flag=True, help="Emit conversation, result and timeline as JSON.")
@click.option("--timeline", "show_timeline", is_flag=True, help="Print every timeline entry.")
def inject_command(
    conversation_path: str,
    config_path: str | None,
    preset_name: str | None,
    seed: int | None,
    json_output: bool,
    show_timeline: bool,
) -> None:
    """Apply a chaos chain to a conversation."""
    if (config_path is None) == (preset_name is None):
        click.echo("Exactly one of --config or --preset is required.", err=True)
        sys.exit(2)
    try:
        conversation = Conversation.model_validate(_load_document(conversation_path))
        configs = _load_configs(config_path) if config_path else preset(preset_name or "", seed)
    except (OSError, ValueError, ValidationError, ConvChaosError) as exc:
        click.echo(f"Error loading input: {exc}", err=True)
        sys.exit(1)

    try:
        mutated, result, timeline = ChaosInjector(default_seed=seed).inject(conversation, configs)
    except ConvChaosError as exc:
        click.echo(f"Injection failed: {exc}", err=True)
        sys.exit(1)

    if json_output:
        payload = {
            "conversation": mutated.model_dump(mode="json", by_alias=True),
            "result": result.model_dump(mode="json", by_alias=True),
            "timeline": [entry.model_dump(mode="json", by_alias=True) for entry in timeline],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    stats = result.statistics
    click.echo(f"Modes       : {', '.join(mode.value for mode in result.modes)}")
    click.echo(f"Seed        : {result.seed}")
    click.echo(f"Fingerprint : {result.fingerprint}")
    click.echo(f"Messages    : {len(mutated.messages)}/{stats.total_messages} delivered")
    click.echo(f"Modified    : {stats.modified_messages}")
    click.echo(f"  dropped   : {stats.dropped_messages}")
    click.echo(f"  delayed   : {stats.delayed_messages}")
    click.echo(f"  reordered : {stats.reordered_messages}")
    click.echo(f"  corrupted : {stats.corrupted_messages}")
    if stats.average_delay is not None:
        click.echo(f"Delay       : avg {stats.average_delay:.1f} ms, max {stats.max_delay:.1f} ms")
    click.echo(f"Agents      : {', '.join(result.affected_agents) or '-'}")
    if show_timeline:
        for entry in timeline:
            click.echo(
                f"  [{entry.message_index:>4}] {entry.mode.value:<17} {entry.action:<12} "
                f"{json.dumps(entry.details, sort_keys=True)}"
            )


@main.command("validate")
@click.option("--config", "config_path", required=True, metavar="PATH", help="Single chaos configuration.")
@click.option("--samples", type=int, default=None, help="Number of trials.  [default: settings]")
@click.option("--seed", type=int, default=None, help="Seed of the long-run generator.")
@click.option("--messages", type=int, default=None, help="Messages per synthetic trial.")
@click.option("--json-output", is_flag=True, help="Emit the report as JSON.")
def validate_command(
    config_path: str,
    samples: int | None,
    seed: int | None,
    messages: int | None,
    json_output: bool,
) -> None:
    """Chi-square test a configuration's distribution over synthetic trials."""
    try:
        configs = _load_configs(config_path)
        if len(configs) != 1:
            raise ValueError(f"expected one configuration, found {len(configs)}")
        config = configs[0]
        report = validate_distribution(
            config.mode,
            config.parameters,
            samples,
            seed=seed,
            messages_per_trial=messages,
        )
    except (OSError, ValueError, ConvChaosError) as exc:
        click.echo(f"Validation error: {exc}", err=True)
        sys.exit(1)

    if json_output:
        click.echo(report.model_dump_json(indent=2, by_alias=True))
    else:
        click.echo(f"Mode        : {report.mode.value}")
        click.echo(f"Trials      : {report.trials}")
        click.echo(f"Decisions   : {report.samples}")
        for category, expected, actual in zip(
            report.categories, report.expected, report.actual, strict=True
        ):
            click.echo(f"  {category:<24} expected {expected:>12.1f}  actual {actual:>10}")
        click.echo(
            f"Chi-square  : {report.chi_square:.3f} "
            f"(df={report.degrees_of_freedom}, critical={report.critical_value:.3f})"
        )
        click.echo(f"Result      : {'PASSED' if report.passed else 'FAILED'}")
    if not report.passed:
        sys.exit(1)


@main.command("verify")
def verify_command() -> None:
    """Run the generator conformance check (10,000th draw from seed 1)."""
    if SeededRandom.verify():
        click.echo(f"Generator conformant: state {SeededRandom.CHECK_STATE} after 10000 draws.")
        return
    click.echo("Generator NOT conformant.", err=True)
    sys.exit(1)


if __name__ == "__main__":
    main()
