"""
CLI for workflow insights.

Usage:
    workflow-insights analyze BATCH [--config FILE] [--output FILE] [--now TIME] [--json]
    workflow-insights config [--config FILE] [--output FILE]

BATCH is a JSON document of normalized shell commands, AI conversations and
commits (see `gptme_workflow_insights.batch`).
"""

import logging
from pathlib import Path
from typing import Optional

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .batch import BatchFormatError, dump_report, load_batch, parse_timestamp
from .config import CONFIG_ENV_VAR, InsightsConfig
from .engine import InsightsReport, analyze_batch

logger = logging.getLogger(__name__)

console = Console()

GRADE_STYLES = {"A": "green", "B": "yellow", "C": "magenta"}


def _load_config(config_path: Optional[Path]) -> InsightsConfig:
    try:
        return InsightsConfig.load(config_path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
    except OSError as e:
        raise click.ClickException(f"Cannot read configuration: {e}") from e


def _print_summary(report: InsightsReport) -> None:
    """Print a compact overview of the report."""
    score = report.score
    style = GRADE_STYLES.get(score.grade[0], "red")
    console.print(
        f"\n[bold {style}]Productivity score: {score.overall:.0f}/100 (grade {score.grade})[/]"
    )

    breakdown = Table(show_header=False, box=None)
    breakdown.add_column("Component", style="bold")
    breakdown.add_column("Score", justify="right")
    breakdown.add_row("AI effectiveness", f"{score.ai_effectiveness:.0f}")
    breakdown.add_row("Shell efficiency", f"{score.shell_efficiency:.0f}")
    breakdown.add_row("Workflow quality", f"{score.workflow_quality:.0f}")
    breakdown.add_row("AI helpfulness", f"{report.ai_helpfulness_rate:.1f}%")
    ai_velocity, solo_velocity = report.velocity
    breakdown.add_row("Velocity (AI / solo)", f"{ai_velocity:.2f} / {solo_velocity:.2f} commits/h")
    console.print(breakdown)

    if report.workflows.patterns:
        table = Table(title="Workflow patterns")
        table.add_column("Pattern")
        table.add_column("Count", justify="right")
        table.add_column("Avg minutes", justify="right")
        table.add_column("Success", justify="right")
        for pattern in report.workflows.patterns:
            table.add_row(
                pattern.kind.value,
                str(pattern.occurrences),
                f"{pattern.avg_resolution_minutes:.1f}",
                f"{pattern.success_rate:.0f}%",
            )
        console.print(table)

    counts = {k: v for k, v in report.ai_impact.archetype_counts.items() if v}
    if counts:
        table = Table(title="AI sessions")
        table.add_column("Archetype")
        table.add_column("Sessions", justify="right")
        for archetype, count in counts.items():
            table.add_row(archetype, str(count))
        console.print(table)

    for rec in report.recommendations:
        console.print(f"[bold]{rec.priority.value.upper()}[/] {rec.category}: {rec.issue}")
        console.print(f"  {rec.action}")


@click.group()
@click.option("-v", "--verbose", is_flag=True)
def cli(verbose: bool):
    """Correlate shell struggles, AI sessions and commits."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=log_level)


@cli.command()
@click.argument("batch", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help=f"YAML or TOML config file (default: ${CONFIG_ENV_VAR} or built-in defaults)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the JSON report to this file",
)
@click.option("--now", help="Reference time (ISO-8601) for commands without timestamps")
@click.option("--json", "as_json", is_flag=True, help="Print the JSON report instead of a summary")
def analyze(
    batch: Path,
    config_path: Optional[Path],
    output: Optional[Path],
    now: Optional[str],
    as_json: bool,
):
    """Analyze a normalized event batch."""
    config = _load_config(config_path)
    try:
        events = load_batch(batch)
        reference = parse_timestamp(now) if now else None
    except (BatchFormatError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    report = analyze_batch(events, config, now=reference)

    if output:
        dump_report(report, output)
        logger.info("Report written to %s", output)
    if as_json:
        click.echo(report.to_json())
    else:
        _print_summary(report)


@cli.command("config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Config file to validate and show",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the effective config as YAML to this file",
)
def config_(config_path: Optional[Path], output: Optional[Path]):
    """Show the effective configuration."""
    config = _load_config(config_path)
    if output:
        config.to_yaml(output)
        console.print(f"[green]Wrote config to {output}[/]")
        return
    click.echo(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def main():
    cli()


if __name__ == "__main__":
    main()
