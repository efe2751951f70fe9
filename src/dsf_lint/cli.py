"""CLI interface for dsf-lint using Typer framework."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dsf_lint import __description__, __version__
from dsf_lint.config import LogLevel, OutputFormat, create_default_config, find_config_file, load_config
from dsf_lint.errors import DsfLintError
from dsf_lint.project import PluginProject, ProjectValidator
from dsf_lint.report import build_report, render_markdown, write_report
from dsf_lint.validation import Severity, ValidationResult

app = typer.Typer(
    name="dsf-lint",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()
err_console = Console(stderr=True)

_LOG_LEVELS = {
    LogLevel.ERROR.value: logging.ERROR,
    LogLevel.WARN.value: logging.WARNING,
    LogLevel.INFO.value: logging.INFO,
    LogLevel.DEBUG.value: logging.DEBUG,
}

_SEVERITY_COLORS = {
    Severity.ERROR: "red",
    Severity.WARN: "yellow",
    Severity.INFO: "blue",
    Severity.SUCCESS: "green",
}


def setup_logging(level: str) -> None:
    """Route engine logging through rich on stderr."""
    handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=False)
    logging.basicConfig(level=_LOG_LEVELS[level], format="%(message)s", datefmt="[%X]",
                        handlers=[handler], force=True)


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"dsf-lint version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
) -> None:
    """dsf-lint - Validation of DSF process plugin BPMN and FHIR resources."""


@app.command()
def lint(
    path: Annotated[
        Path,
        typer.Argument(help="Path to the process plugin project")
    ] = Path("."),
    format: Annotated[
        Optional[str],
        typer.Option("--format", "-f", help="Output format: table, json, markdown (default: table)")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .dsf-lint.json)")
    ] = None,
    report_dir: Annotated[
        Optional[Path],
        typer.Option("--report-dir", "-o", help="Write a JSON report to this directory")
    ] = None,
    hide_success: Annotated[
        bool,
        typer.Option("--hide-success", help="Do not list passed checks")
    ] = False,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", "-l", help="Log level: error, warn, info, debug")
    ] = None,
) -> None:
    """Validate the BPMN and FHIR resources of a process plugin."""
    valid_formats = [f.value for f in OutputFormat]

    if format is not None and format not in valid_formats:
        console.print(f"[red]Error:[/red] Invalid format '{format}'. Must be one of: {', '.join(valid_formats)}")
        raise typer.Exit(1)

    if log_level is not None and log_level not in _LOG_LEVELS:
        console.print(f"[red]Error:[/red] Invalid log level '{log_level}'. "
                      f"Must be one of: {', '.join(_LOG_LEVELS)}")
        raise typer.Exit(1)

    try:
        path = path.resolve()
        config_path = config or find_config_file(path)
        lint_config = load_config(config_path) if config_path else create_default_config()
        setup_logging(log_level or lint_config.logging.level)

        output_format = format or lint_config.output.format
        include_success = lint_config.validation.include_success and not hide_success
        fail_on_warn = lint_config.validation.fail_on_warn

        project_root = (path / lint_config.project.root).resolve()
        if output_format == OutputFormat.TABLE.value:
            console.print(f"[green]Validating plugin:[/green] {project_root}")

        validator = ProjectValidator.for_path(project_root, lint_config)
        project = PluginProject.discover(validator.context)
        result = validator.validate(project)

        if output_format == OutputFormat.JSON.value:
            console.print_json(jsonlib.dumps(result.to_dict(include_success=include_success)))
        elif output_format == OutputFormat.MARKDOWN.value:
            console.print(render_markdown(result, project.name, include_success, fail_on_warn), markup=False)
        else:
            _output_table(result, include_success, fail_on_warn)

        target_dir = report_dir or (Path(lint_config.output.report_dir) if lint_config.output.report_dir else None)
        if target_dir is not None:
            report = build_report(result, project.name, project_root,
                                  validator.context.api_version.value, include_success)
            report_path = write_report(report, target_dir)
            err_console.print(f"[green]Report written:[/green] {report_path}")

        raise typer.Exit(result.exit_code(fail_on_warn))

    except typer.Exit:
        raise
    except (DsfLintError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)


def _output_table(result: ValidationResult, include_success: bool, fail_on_warn: bool) -> None:
    status_color = _SEVERITY_COLORS[result.status]
    console.print(f"[{status_color}]Validation Status: {result.status.value.upper()}[/{status_color}]")
    console.print(f"Exit Code: {result.exit_code(fail_on_warn)}")

    console.print("\n[blue]Counters:[/blue]")
    counter_table = Table()
    counter_table.add_column("Severity", style="cyan")
    counter_table.add_column("Count", style="white", justify="right")
    for key, value in result.counters.items():
        counter_table.add_row(key.upper(), str(value))
    console.print(counter_table)

    items = [i for i in result.items if include_success or i.severity != Severity.SUCCESS]
    if not items:
        console.print("\n[green]No issues found![/green]")
        return

    console.print("\n[blue]Items:[/blue]")
    items_table = Table()
    items_table.add_column("Severity", style="white")
    items_table.add_column("Kind", style="cyan")
    items_table.add_column("Message", style="white")
    items_table.add_column("Location", style="dim")

    for item in items:
        color = _SEVERITY_COLORS[item.severity]
        location = " ".join(part for part in (item.file, item.process_id, item.element_id or item.reference) if part)
        items_table.add_row(
            f"[{color}]{item.severity.value.upper()}[/{color}]",
            item.kind,
            escape(item.message),
            escape(location),
        )
    console.print(items_table)


if __name__ == "__main__":
    app()
