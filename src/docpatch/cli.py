"""CLI commands for patching generated documentation into source files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import DEFAULT_CONFIG_NAME, ConfigError, PatchConfig, load_config, write_default_config
from .loaders import LoadError, load_generated_docs, load_harvest, pair_documents, write_report
from .pipeline import run
from .schema import FileStatus, RunReport

APP_HELP = "Documentation patch engine CLI entry point."

app = typer.Typer(help=APP_HELP)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config_or_exit(config_path: Path) -> PatchConfig:
    try:
        return load_config(config_path)
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _render_report(report: RunReport) -> None:
    for file_report in report.files:
        line = f"{file_report.file}: {file_report.status.value} ({file_report.edits} edit(s))"
        if file_report.status is FileStatus.FAILED and file_report.error:
            line = f"{line} - {file_report.error}"
        typer.echo(line)
    counts = report.counts()
    summary = ", ".join(f"{name}={value}" for name, value in counts.items())
    mode = "write" if report.write else "dry-run"
    typer.echo(f"Summary [{mode}]: {summary}")


@app.command()
def init(
    config: str = typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the configuration file to create.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing configuration file.",
    ),
) -> None:
    """Write the default configuration file."""
    config_path = Path(config)
    try:
        write_default_config(config_path, force=force)
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    typer.echo(f"Wrote default configuration to {config_path.as_posix()}")


@app.command()
def apply(
    items: Path = typer.Argument(..., help="Harvested items (JSON array or JSON lines)."),
    docs: Path = typer.Argument(..., help="Generated documentation keyed by fully qualified path."),
    config: str = typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the configuration file.",
    ),
    root: Path = typer.Option(
        Path("."),
        "--root",
        help="Directory that relative file paths in the harvest are resolved against.",
    ),
    write: Optional[bool] = typer.Option(
        None,
        "--write/--dry-run",
        help="Write patched files to disk (default comes from the configuration).",
    ),
    overwrite: Optional[bool] = typer.Option(
        None,
        "--overwrite/--no-overwrite",
        help="Replace existing documentation blocks.",
    ),
    only: List[str] = typer.Option(
        None,
        "--only",
        help="Restrict the run to this symbol (repeatable).",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        min=0,
        help="Process at most this many items.",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        min=1,
        help="Number of files patched concurrently.",
    ),
    report: Optional[Path] = typer.Option(
        None,
        "--report",
        help="Write the machine-readable run summary to this path.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the run summary as JSON instead of text.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
) -> None:
    """Patch generated documentation into the harvested source files."""
    _configure_logging(verbose)
    settings = _load_config_or_exit(Path(config))

    overrides: dict[str, object] = {}
    if write is not None:
        overrides["write"] = write
    if overwrite is not None:
        overrides["overwrite"] = overwrite
    if only:
        overrides["only"] = list(only)
    if limit is not None:
        overrides["limit"] = limit
    if workers is not None:
        overrides["workers"] = workers
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        harvested = load_harvest(items)
        generated = load_generated_docs(docs)
    except LoadError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error

    summary = run(pair_documents(harvested, generated), settings, root=root)

    if report is not None:
        write_report(summary, report)
    if as_json:
        typer.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        _render_report(summary)

    if summary.failed_files:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
