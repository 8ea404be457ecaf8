from __future__ import annotations

from pathlib import Path

import typer

from covid_datavis.analyses.registry import analysis_names
from covid_datavis.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from covid_datavis.logging import configure_logging
from covid_datavis.pipeline.run_all import run_all, run_analysis
from covid_datavis.pipeline.stages import PipelineStageError

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _require_known_analysis(name: str) -> str:
    if name not in analysis_names():
        raise typer.BadParameter(
            f"Unknown analysis '{name}'. Choose from: {', '.join(analysis_names())}"
        )
    return name


@app.command("list")
def list_analyses() -> None:
    """List the available analyses."""
    for name in analysis_names():
        typer.echo(name)


@app.command()
def run(
    analysis: str = typer.Argument(..., help="Analysis to run; see `list`."),
    out: Path = typer.Option(Path("output"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    log_level: str = typer.Option("INFO", help="Logging level."),
) -> None:
    """Run a single analysis and write its figure."""
    configure_logging(log_level)
    name = _require_known_analysis(analysis)
    cfg = _load_app_config(config)
    try:
        figure_path = run_analysis(name, cfg, out)
    except PipelineStageError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Figure written to: {figure_path}")


@app.command("run-all")
def run_all_command(
    out: Path = typer.Option(Path("output"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    log_level: str = typer.Option("INFO", help="Logging level."),
) -> None:
    """Run every analysis in turn."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    try:
        figures = run_all(cfg, out)
    except PipelineStageError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Run complete. Figures: {len(figures)}")
    for name, path in figures.items():
        typer.echo(f"- {name}: {path}")


if __name__ == "__main__":
    app()
