"""Output formatting utilities for CLI.

Follows the golden rule:
- stdout = machine-readable data (JSON)
- stderr = human-readable logs and tables

so a report can be piped to other tools while logs stay on the terminal.
"""

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from combat_simulator.metrics.report import DistributionReport, EncounterReport, UnitReport

# stderr console for human logs (preserves colors when redirected)
console = Console(stderr=True)


def output_json(data: Any, indent: Optional[int] = 2):
    """Output JSON to stdout (machine-readable).

    Args:
        data: Data to serialize as JSON
        indent: Indentation level (None for compact)
    """
    print(json.dumps(data, indent=indent), flush=True)


def log_info(message: str, quiet: bool = False):
    """Log info message to stderr.

    Args:
        message: Message to log
        quiet: If True, suppress output
    """
    if not quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def log_success(message: str, quiet: bool = False):
    """Log success message to stderr.

    Args:
        message: Message to log
        quiet: If True, suppress output
    """
    if not quiet:
        console.print(f"[green]✓[/green] {message}")


def log_error(message: str):
    """Log error message to stderr (always shown).

    The message is escaped: validation errors contain square brackets
    that rich would otherwise read as markup.

    Args:
        message: Error message to log
    """
    console.print(f"[red]✗[/red] {escape(message)}", style="bold red")


def log_warning(message: str, quiet: bool = False):
    """Log warning message to stderr.

    Args:
        message: Warning message to log
        quiet: If True, suppress output
    """
    if not quiet:
        console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")


# ============================================================================
# Report Tables
# ============================================================================

_DISTRIBUTION_FIELDS = ("dps", "hps", "threat", "dtps", "tmi", "tto", "dpasp")


def _has_data(dist: DistributionReport) -> bool:
    return bool(dist.avg or dist.max or dist.min)


def build_distribution_table(unit: UnitReport) -> Table:
    """Distribution summary of one unit, skipping metrics that stayed at 0."""
    table = Table(title=f"{unit.name} (unit {unit.unit_index})", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Avg", justify="right", style="yellow")
    table.add_column("Stdev", justify="right")
    table.add_column("Min (seed)", justify="right", style="green")
    table.add_column("Max (seed)", justify="right", style="red")

    for field_name in _DISTRIBUTION_FIELDS:
        dist: DistributionReport = getattr(unit, field_name)
        if not _has_data(dist):
            continue
        table.add_row(
            field_name,
            f"{dist.avg:,.2f}",
            f"{dist.stdev:,.2f}",
            f"{dist.min:,.2f} ({dist.min_seed})",
            f"{dist.max:,.2f} ({dist.max_seed})",
        )
    return table


def build_actions_table(unit: UnitReport) -> Table:
    """Per-ability, per-target totals of one unit."""
    table = Table(title=f"{unit.name} actions", show_header=True, header_style="bold magenta")
    table.add_column("Action", style="cyan", no_wrap=True)
    table.add_column("Target", justify="right")
    table.add_column("Casts", justify="right")
    table.add_column("Hits", justify="right")
    table.add_column("Crits", justify="right")
    table.add_column("Misses", justify="right")
    table.add_column("Damage", justify="right", style="yellow")
    table.add_column("Healing", justify="right", style="green")

    for action in unit.actions:
        label = f"{action.id.spell_id or action.id.item_id or action.id.other_id}"
        if action.id.tag:
            label += f"#{action.id.tag}"
        for target in action.targets:
            table.add_row(
                label,
                str(target.unit_index),
                str(target.casts),
                str(target.hits),
                str(target.crits),
                str(target.misses),
                f"{target.damage:,.0f}",
                f"{target.healing + target.shielding:,.0f}",
            )
    return table


def print_report(report: EncounterReport):
    """Render a whole report to the stderr console."""
    console.print(f"[bold]Iterations:[/bold] {report.iterations}")
    for unit in report.units:
        console.print(build_distribution_table(unit))
        console.print(
            f"  chance of death: {unit.chance_of_death:.2%}   "
            f"avg seconds OOM: {unit.seconds_oom_avg:.2f}"
        )
        if unit.actions:
            console.print(build_actions_table(unit))
