"""Replay command - fold a recorded event log into a report."""

import json
from pathlib import Path
from typing import Optional

import typer
import yaml
from typing_extensions import Annotated

from combat_simulator.cli.output import log_error, log_info, log_success, log_warning, output_json
from combat_simulator.config import load_config
from combat_simulator.encounter import EncounterMetrics
from combat_simulator.replay import ReplayError, replay_file


def replay_command(
    config: Annotated[
        Path,
        typer.Argument(help="Encounter configuration file (YAML)", exists=True, dir_okay=False),
    ],
    events: Annotated[
        Path,
        typer.Argument(help="Event log file (JSON lines)", exists=True, dir_okay=False),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the report here instead of stdout"),
    ] = None,
    save_all_values: Annotated[
        bool,
        typer.Option("--save-all-values", help="Keep every per-iteration value in the report"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress informational logs"),
    ] = False,
) -> None:
    """Replay EVENTS against the roster in CONFIG and emit the report as JSON."""
    try:
        metrics_config = load_config(config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        log_error(str(e))
        raise typer.Exit(1) from e

    metrics = EncounterMetrics.from_config(metrics_config)
    if save_all_values:
        metrics.save_all_values = True
    log_info(f"Loaded {len(metrics.units)} units from {config}", quiet)

    try:
        applied = replay_file(metrics, events)
    except ReplayError as e:
        log_error(f"{events}: {e}")
        raise typer.Exit(1) from e

    if metrics.in_iteration:
        log_warning("Event log ends inside an iteration; it was not folded", quiet)
    if metrics.iterations != metrics_config.run.iterations:
        log_warning(
            f"Folded {metrics.iterations} iterations, configuration expects "
            f"{metrics_config.run.iterations}",
            quiet,
        )

    report = metrics.to_report().model_dump(mode="json")
    if output is not None:
        output.write_text(json.dumps(report, indent=2))
        log_success(f"Wrote report for {metrics.iterations} iterations to {output}", quiet)
    else:
        output_json(report)
        log_success(f"Replayed {applied} events over {metrics.iterations} iterations", quiet)
