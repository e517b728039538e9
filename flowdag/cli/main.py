"""flowdag CLI - Main entrypoint."""

import typer

from flowdag import __version__
from flowdag.cli.commands import pipeline_cmd
from flowdag.cli.utils import console

app = typer.Typer(
    name="flowdag",
    help="flowdag - phase-based workflow pipelines over external agent executors.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

app.command("validate")(pipeline_cmd.validate_pipeline)
app.command("order")(pipeline_cmd.show_order)
app.command("run")(pipeline_cmd.run_pipeline)
app.command("monitor")(pipeline_cmd.monitor_pipeline)
app.command("template")(pipeline_cmd.render_template)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"[bold blue]flowdag[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Only log errors"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """flowdag CLI.

    Global flags are stored on `ctx.obj` for subcommands.
    """
    if ctx.obj is None:
        ctx.obj = {}

    log_level = None
    if quiet:
        log_level = "ERROR"
    elif verbose:
        log_level = "DEBUG"
    ctx.obj["log_level"] = log_level


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
