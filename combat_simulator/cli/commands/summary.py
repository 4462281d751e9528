"""Summary command - render a report as tables."""

from pathlib import Path

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from combat_simulator.cli.output import log_error, print_report
from combat_simulator.metrics.report import EncounterReport


def summary_command(
    report: Annotated[
        Path,
        typer.Argument(help="Report file produced by 'replay' (JSON)", exists=True, dir_okay=False),
    ],
) -> None:
    """Show distributions, survival and per-action totals of REPORT."""
    try:
        parsed = EncounterReport.model_validate_json(report.read_text())
    except ValidationError as e:
        log_error(f"Invalid report {report}: {e}")
        raise typer.Exit(1) from e

    print_report(parsed)
