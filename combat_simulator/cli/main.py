"""Combat Metrics CLI - Main entry point."""

import typer
from typing_extensions import Annotated

app = typer.Typer(
    name="combat-metrics",
    help="Combat Metrics - fold recorded encounter iterations into statistical reports",
    add_completion=True,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from combat_simulator import __version__
        from combat_simulator.cli.output import console
        console.print(f"[bold]Combat Metrics[/bold] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Combat Metrics CLI - replay event logs and inspect reports."""
    pass


# Import commands after app is defined to avoid circular imports
from combat_simulator.cli.commands.replay import replay_command
from combat_simulator.cli.commands.summary import summary_command

app.command(name="replay", help="Replay a recorded event log into a metrics report")(replay_command)
app.command(name="summary", help="Show a metrics report as tables")(summary_command)


if __name__ == "__main__":
    app()
