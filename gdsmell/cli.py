"""Typer-based CLI for the GDScript code smell analyzer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .analysis_result import AnalysisResult
from .config import DEFAULT_CONFIG_FILE, OUTPUT_FORMATS
from .config_manager import AnalysisConfig, ConfigError, generate_sample_config, load_config
from .detector_registry import ALL_DETECTORS
from .models import ModelError
from .orchestrator import SmellOrchestrator
from .report_writer import save_result

console = Console()

app = typer.Typer(
    help="🔍 gdsmell: code smell detection for Godot / GDScript projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

SEVERITY_COLORS = {"Critical": "red", "High": "yellow", "Medium": "cyan", "Low": "green"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"gdsmell v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """gdsmell: find code smells in GDScript sources against configurable thresholds."""
    pass


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _resolve_config(project_path: Path, config_path: Optional[Path]) -> AnalysisConfig:
    if config_path is not None:
        return load_config(config_path)
    local = project_path / DEFAULT_CONFIG_FILE
    if local.exists():
        return load_config(local)
    return AnalysisConfig()


def _print_summary(result: AnalysisResult) -> None:
    summary = result.summary()
    stats = summary["project_stats"]
    console.print(
        Panel(
            f"[bold]{summary['project']}[/bold]\n"
            f"Classes: {stats['total_classes']} | Methods: {stats['total_methods']} | "
            f"Autoloads: {stats['autoloads']} | Scenes: {stats['total_scenes']} | LOC: {stats['total_loc']}",
            title="Project",
            border_style="cyan",
        )
    )

    table = Table(title="Smells by severity", show_header=True)
    table.add_column("Severity", style="bold")
    table.add_column("Count", justify="right")
    for severity, count in summary["by_severity"].items():
        color = SEVERITY_COLORS.get(severity, "white")
        table.add_row(f"[{color}]{severity}[/{color}]", str(count))
    console.print(table)

    if summary["by_type"]:
        by_type = Table(title="Smells by type", show_header=True)
        by_type.add_column("Smell")
        by_type.add_column("Count", justify="right")
        for name, count in sorted(summary["by_type"].items(), key=lambda item: (-item[1], item[0])):
            by_type.add_row(name, str(count))
        console.print(by_type)

    if result.failures:
        console.print(f"[yellow]⚠ {len(result.failures)} detector failure(s); see the report for details.[/yellow]")


@app.command("analyze")
def analyze(
    project_path: Path = typer.Argument(..., help="Path to the Godot project (folder holding project.godot)."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Directory for the report."),
    fmt: Optional[str] = typer.Option(
        None, "--format", "-f", help=f"Report format: {', '.join(OUTPUT_FORMATS)}."
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """Analyze a Godot project and write a code smell report."""
    _setup_logging(verbose)

    if not project_path.exists() or not project_path.is_dir():
        console.print(f"[red]✗[/red] Project path not found or not a directory: {project_path}")
        raise typer.Exit(code=1)

    try:
        config = _resolve_config(project_path, config_path)
        report_format = (fmt or config.output.format).strip().lower()
        if report_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unsupported output format '{report_format}' (expected one of: {', '.join(OUTPUT_FORMATS)})"
            )
        output_dir = output or Path(config.output.directory)

        console.print(f"\n[bold cyan]🔍 Analyzing '{project_path}'...[/bold cyan]\n")
        result = SmellOrchestrator(config).run(project_path)
        run_dir = save_result(
            result,
            output_dir,
            report_format,
            config.output.include_details,
            group_by_severity=config.output.group_by_severity,
        )
    except (ConfigError, ModelError) as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    except OSError as exc:
        console.print(f"[red]✗[/red] Cannot write report: {escape(str(exc))}")
        raise typer.Exit(code=1)

    _print_summary(result)
    console.print(f"\n[green]✓[/green] Analysis complete: {len(result.detected_smells)} smells detected.")
    console.print(f"[green]✓[/green] Report saved to {run_dir}")


@app.command("generate-config")
def generate_config(
    path: Path = typer.Argument(Path(DEFAULT_CONFIG_FILE), help="Where to write the sample configuration."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
):
    """Write a configuration file listing every detector and threshold default."""
    if path.exists() and not force:
        console.print(f"[red]✗[/red] {path} already exists (use --force to overwrite).")
        raise typer.Exit(code=1)
    try:
        written = generate_sample_config(path)
    except OSError as exc:
        console.print(f"[red]✗[/red] Cannot write {path}: {exc}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Sample configuration written to {written}")


@app.command("list-detectors")
def list_detectors():
    """List the detector catalog with its default thresholds."""
    table = Table(title="Detectors", show_header=True, show_lines=False)
    table.add_column("Name", style="bold cyan", no_wrap=True)
    table.add_column("Scopes")
    table.add_column("Description")
    table.add_column("Defaults")
    for detector in ALL_DETECTORS:
        scopes = ", ".join(sorted(kind.value for kind in detector.scopes))
        defaults = ", ".join(f"{key}={value}" for key, value in detector.defaults.items())
        name = f"{detector.name} [dim](heuristic)[/dim]" if detector.heuristic else detector.name
        table.add_row(name, scopes, detector.description, defaults)
    console.print(table)


if __name__ == "__main__":
    app()
