"""Pipeline commands: validate, order, run, monitor and template."""

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.markup import escape
from rich.table import Table

from flowdag.cli.utils import (
    build_runner,
    build_state_store,
    build_task_executor,
    console,
    echo_json,
    setup_logging,
)
from flowdag.compiler.config_loader import load_config
from flowdag.compiler.pipeline_loader import (
    PipelineDefinition,
    build_engine,
    definition_to_manifest,
    dump_manifest,
    load_pipeline,
)
from flowdag.drivers.executors import LocalTaskExecutor
from flowdag.drivers.state_store import InMemoryStateStore
from flowdag.kernel.config.models import FlowDAGConfig, LoggingConfig
from flowdag.kernel.domain.dag import DependencyResolver
from flowdag.kernel.domain.results import PipelineOutcome, RunOutcome
from flowdag.kernel.exceptions import ConfigurationError, FlowDAGError
from flowdag.kernel.orchestration.validator import PipelineValidator
from flowdag.stdlib.factories import PIPELINE_TEMPLATES

PipelineArg = Annotated[Path, typer.Argument(help="Path to pipeline YAML manifest")]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Config file (YAML or pyproject.toml)"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output machine-readable JSON")]


def _log_level(ctx: typer.Context) -> str | None:
    return (ctx.obj or {}).get("log_level")


def _fail(message: str, code: int = 1) -> typer.Exit:
    console.print(f"[red]Error: {escape(message)}[/red]")
    return typer.Exit(code)


def _load(
    ctx: typer.Context, pipeline_path: Path, config_path: Path | None
) -> tuple[PipelineDefinition, FlowDAGConfig]:
    try:
        config = load_config(config_path)
        setup_logging(config.logging, _log_level(ctx))
        definition = load_pipeline(pipeline_path)
    except (ConfigurationError, FileNotFoundError) as e:
        raise _fail(str(e), code=2) from e
    return definition, config


def validate_pipeline(
    ctx: typer.Context,
    pipeline_path: PipelineArg,
    config_path: ConfigOption = None,
    json_out: JsonOption = False,
) -> None:
    """Check a pipeline for structural errors without running it."""
    definition, config = _load(ctx, pipeline_path, config_path)
    report = PipelineValidator(config.engine).validate(definition.phases)

    if json_out:
        echo_json(report.model_dump(mode="json"))
    else:
        console.print(f"[cyan]Validating pipeline: {escape(definition.id)}[/cyan]")
        for error in report.errors:
            console.print(f"  [red]✗[/red] {escape(error)}")
        for warning in report.warnings:
            console.print(f"  [yellow]⚠[/yellow] {escape(warning)}")
        for suggestion in report.suggestions:
            console.print(f"  [dim]→ {escape(suggestion)}[/dim]")
        if report.is_valid:
            console.print(
                f"[green]✓ Pipeline is valid[/green] ({len(definition.phases)} phases)"
            )
        else:
            console.print(f"[red]✗ {len(report.errors)} error(s) found[/red]")

    if not report.is_valid:
        raise typer.Exit(1)


def show_order(
    ctx: typer.Context,
    pipeline_path: PipelineArg,
    json_out: JsonOption = False,
) -> None:
    """Print the order in which phases would run."""
    setup_logging(LoggingConfig(), _log_level(ctx))
    try:
        definition = load_pipeline(pipeline_path)
    except ConfigurationError as e:
        raise _fail(str(e), code=2) from e

    errors = PipelineValidator().structural_errors(definition.phases)
    if errors:
        if json_out:
            echo_json({"order": [], "errors": errors})
        else:
            for error in errors:
                console.print(f"  [red]✗[/red] {escape(error)}")
        raise typer.Exit(1)

    order = DependencyResolver(definition.phases).order()
    if json_out:
        echo_json({"order": order, "errors": []})
        return
    for index, phase_id in enumerate(order, start=1):
        console.print(f"  {index}. {escape(phase_id)}")


def _print_outcome(outcome: PipelineOutcome) -> None:
    if outcome.outcome == RunOutcome.STRUCTURAL_ERROR:
        console.print("[red]✗ Pipeline could not run[/red]")
        for error in outcome.errors:
            console.print(f"  [red]✗[/red] {escape(error)}")
        return

    result = outcome.result
    if result is None:
        return

    table = Table(title=f"Pipeline {result.pipeline_id}", show_header=True)
    table.add_column("Phase", style="cyan")
    table.add_column("Status")
    table.add_column("Tasks", justify="right")
    table.add_column("Duration", justify="right", style="dim")
    for phase in result.phases:
        status = "[green]✓[/green]" if phase.success else "[red]✗[/red]"
        table.add_row(
            phase.phase_id,
            status,
            f"{phase.successful_tasks}/{phase.total_tasks}",
            f"{phase.duration_ms:.0f}ms",
        )
    console.print(table)

    metrics = result.metrics
    colour = "green" if result.success else "red"
    console.print(
        f"[{colour}]{result.outcome.value}[/{colour}]: "
        f"{metrics.successful_tasks}/{metrics.total_tasks} tasks succeeded, "
        f"quality {metrics.quality_score:.2f}, {result.duration_ms:.0f}ms"
    )


def run_pipeline(
    ctx: typer.Context,
    pipeline_path: PipelineArg,
    config_path: ConfigOption = None,
    container: Annotated[
        str | None,
        typer.Option("--container", help="Run agent commands inside this container"),
    ] = None,
    json_out: JsonOption = False,
) -> None:
    """Run a pipeline. Exit code 0 on success, 1 on task failures, 2 if it could not run."""
    definition, config = _load(ctx, pipeline_path, config_path)
    runner = build_runner(config, container)
    engine = build_engine(
        definition,
        build_task_executor(config, runner),
        build_state_store(config, runner),
        config.engine,
    )

    if not json_out:
        console.print(f"[cyan]Running pipeline: {escape(engine.name)}[/cyan]")
    try:
        outcome = asyncio.run(engine.arun())
    except FlowDAGError as e:
        raise _fail(f"{type(e).__name__}: {e}") from e

    if json_out:
        echo_json({**outcome.model_dump(mode="json"), "exit_code": outcome.exit_code})
    else:
        _print_outcome(outcome)
    raise typer.Exit(outcome.exit_code)


def monitor_pipeline(
    ctx: typer.Context,
    pipeline_path: PipelineArg,
    config_path: ConfigOption = None,
    json_out: JsonOption = False,
) -> None:
    """Show progress of the latest run from the configured state store."""
    definition, config = _load(ctx, pipeline_path, config_path)
    runner = build_runner(config)
    engine = build_engine(
        definition,
        build_task_executor(config, runner),
        build_state_store(config, runner),
        config.engine,
    )
    report = asyncio.run(engine.amonitor())

    if json_out:
        echo_json(report.model_dump(mode="json"))
        return

    console.print(f"[bold]{escape(engine.name)}[/bold] ({report.run_id or 'no run'})")
    console.print(f"  Status:   {report.status.value}")
    console.print(f"  Progress: {report.progress:.1f}%")
    console.print(f"  Phase:    {escape(report.current_phase)}")
    console.print(f"  ETA:      {report.eta_ms / 1000:.1f}s")
    console.print(
        f"  Tasks:    {report.metrics.successful_tasks} ok, "
        f"{report.metrics.failed_tasks} failed, {report.metrics.total_tasks} total"
    )


def render_template(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help=f"One of: {', '.join(PIPELINE_TEMPLATES)}")],
    project_name: Annotated[
        str,
        typer.Option(
            "--project-name", "-p", help="Project name, or repository URL for code-review"
        ),
    ],
    model_type: Annotated[
        str | None, typer.Option("--model-type", help="ml: model type")
    ] = None,
    review_depth: Annotated[
        str | None, typer.Option("--review-depth", help="code-review: review depth")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the manifest to this file")
    ] = None,
) -> None:
    """Render a built-in pipeline as a YAML manifest."""
    setup_logging(LoggingConfig(), _log_level(ctx))
    factory = PIPELINE_TEMPLATES.get(name)
    if factory is None:
        raise _fail(f"Unknown template '{name}'. Available: {', '.join(PIPELINE_TEMPLATES)}")

    options: dict[str, Any] = {}
    if model_type:
        options["model_type"] = model_type
    if review_depth:
        options["review_depth"] = review_depth

    try:
        engine = factory(LocalTaskExecutor(), InMemoryStateStore(), project_name, **options)
    except (TypeError, ValueError) as e:
        raise _fail(str(e)) from e

    text = dump_manifest(definition_to_manifest(engine))
    if output is None:
        typer.echo(text, nl=False)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓ Wrote {escape(engine.id)} to {output}[/green]")
