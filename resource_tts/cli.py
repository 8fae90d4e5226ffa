"""Typer-powered command line interface for resource-tts."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import typer

from .config import build_settings
from .core import ResourceTTSError
from .messages import MISSING_CREDENTIALS_MESSAGE
from .pipeline import RunReport, create_engine, run_sync


app = typer.Typer(
    add_completion=False,
    help=(
        "Synthesize speech for localized string resources and keep each "
        "language's audio folder in sync: unchanged text is never "
        "re-synthesized and audio no longer referenced is deleted."
    ),
)


def configure_logging(level: int = logging.INFO, log_path: Optional[Path] = None) -> None:
    """Configure console logging and, optionally, a rotating log file."""

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    if log_path is not None:
        log_path = log_path.expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=1_048_576,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(file_handler)


def _log_level(verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def _raise_cli_error(exc: Exception) -> None:
    """Render an informative error message and abort the command."""

    message = str(exc).strip() or exc.__class__.__name__
    lowered = message.lower()
    if any(keyword in lowered for keyword in ("credential", "api key", "http 401", "http 403")):
        if MISSING_CREDENTIALS_MESSAGE not in message:
            message = f"{message}\n{MISSING_CREDENTIALS_MESSAGE}"
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1) from exc


def _render_report(report: RunReport) -> None:
    typer.echo(report.summary())
    for directory in report.skipped_prune_directories:
        typer.echo(f"Warning: '{directory}' was not pruned because some files failed to parse.", err=True)


@app.command()
def sync(
    input_root: Path = typer.Argument(..., help="Folder holding values/, values-<lang>/ or res-<lang>/ subfolders."),
    patterns: str = typer.Argument(..., help="Semicolon-separated regular expressions, e.g. '^tip_.*;^catalog_.*'."),
    output: str = typer.Argument(..., help="Output root (audio goes to <root>/raw-<lang>) or a template such as 'res/raw-%1$s'."),
    prefix: str = typer.Argument(..., help="File name prefix of every generated audio file, e.g. 'audio_'."),
    *,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a JSON or YAML configuration file."),
    voices: Optional[Path] = typer.Option(None, "--voices", help="JSON or YAML file of per-language voice overrides."),
    default_language: Optional[str] = typer.Option(None, "--default-language", "-l", help="Language of the plain 'values' folder (default: en)."),
    unescape: Optional[bool] = typer.Option(None, "--unescape/--no-unescape", help="Resolve Android backslash escapes before synthesis."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this rotating file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
) -> None:
    """Synthesize selected strings and prune audio that is no longer used."""

    configure_logging(_log_level(verbose, quiet), log_file)
    try:
        settings = build_settings(
            input_root=input_root,
            patterns=patterns,
            output=output,
            prefix=prefix,
            config_path=config,
            voices_path=voices,
            default_language=default_language,
            unescape=unescape,
        )
        report = run_sync(settings, create_engine)
    except ResourceTTSError as exc:
        _raise_cli_error(exc)
    _render_report(report)


def main() -> None:
    """Entry point compatible with ``python -m resource_tts.cli``."""

    app()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
