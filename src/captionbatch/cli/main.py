from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, NoReturn

import typer
from pydantic import ValidationError

from captionbatch.config.settings import Settings
from captionbatch.domain.summary import RunSummary
from captionbatch.exceptions import CaptionBatchError, ConfigurationError
from captionbatch.pipeline import CaptionPipeline
from captionbatch.utils import ffmpeg
from captionbatch.utils.doctor import run_doctor
from captionbatch.utils.logging import configure_logging, get_logger
from captionbatch.utils.report import write_run_report

app = typer.Typer(
    add_completion=False,
    help="Add timed text captions to videos with ffmpeg drawtext.",
)
log = get_logger(__name__)


def _load_settings(**overrides: Any) -> Settings:
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


def _fail(err: CaptionBatchError) -> NoReturn:
    typer.echo(f"{err.label()}: {err.message}", err=True)
    raise typer.Exit(code=err.exit_code)


def _execute(
    *,
    mode: str,
    settings_overrides: dict[str, Any],
    run: Callable[[CaptionPipeline], RunSummary],
    dry_run: bool,
    verbose: bool,
    log_level: str | None,
    skip_existing: bool,
    report: Path | None,
    fail_on_error: bool,
) -> None:
    try:
        settings = _load_settings(**settings_overrides)
        configure_logging(log_level or settings.log_level, verbose=verbose)
        if not dry_run:
            ffmpeg.ensure_ffmpeg()

        pipeline = CaptionPipeline(settings, verbose=verbose, skip_existing=skip_existing)
        summary = run(pipeline)
    except CaptionBatchError as err:
        _fail(err)

    if report is not None:
        path = write_run_report(summary, report, settings=settings, mode=mode)
        typer.echo(f"Report: {path}")

    if fail_on_error and summary.failed:
        raise typer.Exit(code=1)


def _output_dir_option() -> Any:
    return typer.Option(None, "--output-dir", help="Output directory for processed videos (default: ./output).")


def _dry_run_option() -> Any:
    return typer.Option(False, "--dry-run", help="Show what would be processed without rendering.")


def _verbose_option() -> Any:
    return typer.Option(False, "--verbose", help="Show detailed output per video.")


def _log_level_option() -> Any:
    return typer.Option(None, "--log-level", help="Log level (overrides config).")


def _skip_existing_option() -> Any:
    return typer.Option(False, "--skip-existing", help="Skip jobs whose output file already exists.")


def _report_option() -> Any:
    return typer.Option(None, "--report", help="Write a JSON run report to this path.")


def _fail_on_error_option() -> Any:
    return typer.Option(False, "--fail-on-error", help="Exit with status 1 if any video failed.")


@app.command("csv")
def csv_command(
    manifest: Path = typer.Argument(..., help="CSV with columns filename, START_TIME, END_TIME, TEXT."),
    base_path: str = typer.Option(None, "--base-path", help="Prepend this path to filenames in the CSV."),
    output_dir: str = _output_dir_option(),
    dry_run: bool = _dry_run_option(),
    verbose: bool = _verbose_option(),
    log_level: str = _log_level_option(),
    skip_existing: bool = _skip_existing_option(),
    report: Path = _report_option(),
    fail_on_error: bool = _fail_on_error_option(),
) -> None:
    """
    Caption every video listed in a CSV manifest.

    Optional columns: VIDEO_WIDTH, VIDEO_HEIGHT, FILENAME_OUTPUT (with or
    without extension). Use \\n in TEXT for line breaks. Quoted fields are not
    supported, so TEXT must not contain commas.
    """
    _execute(
        mode="csv",
        settings_overrides={"output_dir": output_dir},
        run=lambda p: p.run_manifest(manifest, base_path=base_path, dry_run=dry_run),
        dry_run=dry_run,
        verbose=verbose,
        log_level=log_level,
        skip_existing=skip_existing,
        report=report,
        fail_on_error=fail_on_error,
    )


@app.command()
def batch(
    input_dir: str = typer.Option(None, "--input-dir", help="Folder with .mp4/.mov files (overrides config)."),
    text: str = typer.Option(None, help="Caption text; \\n for line breaks (overrides config)."),
    start: float = typer.Option(None, help="Caption start in seconds (overrides config)."),
    end: float = typer.Option(None, help="Caption end in seconds (overrides config)."),
    output_dir: str = _output_dir_option(),
    dry_run: bool = _dry_run_option(),
    verbose: bool = _verbose_option(),
    log_level: str = _log_level_option(),
    skip_existing: bool = _skip_existing_option(),
    report: Path = _report_option(),
    fail_on_error: bool = _fail_on_error_option(),
) -> None:
    """Caption every video in a directory with the same text and timing."""
    _execute(
        mode="batch",
        settings_overrides={
            "output_dir": output_dir,
            "input_directory": input_dir,
            "text": text,
            "start_time": start,
            "end_time": end,
        },
        run=lambda p: p.run_directory(dry_run=dry_run),
        dry_run=dry_run,
        verbose=verbose,
        log_level=log_level,
        skip_existing=skip_existing,
        report=report,
        fail_on_error=fail_on_error,
    )


@app.command()
def single(
    input_video: str = typer.Option(None, "--input", help="Source video (overrides config)."),
    output_video: str = typer.Option(None, "--output", help="Output file name inside the output directory."),
    text: str = typer.Option(None, help="Caption text; \\n for line breaks (overrides config)."),
    start: float = typer.Option(None, help="Caption start in seconds (overrides config)."),
    end: float = typer.Option(None, help="Caption end in seconds (overrides config)."),
    output_dir: str = _output_dir_option(),
    dry_run: bool = _dry_run_option(),
    verbose: bool = _verbose_option(),
    log_level: str = _log_level_option(),
    skip_existing: bool = _skip_existing_option(),
    report: Path = _report_option(),
    fail_on_error: bool = _fail_on_error_option(),
) -> None:
    """Caption one video."""
    _execute(
        mode="single",
        settings_overrides={
            "output_dir": output_dir,
            "input_video": input_video,
            "output_video": output_video,
            "text": text,
            "start_time": start,
            "end_time": end,
        },
        run=lambda p: p.run_single(dry_run=dry_run),
        dry_run=dry_run,
        verbose=verbose,
        log_level=log_level,
        skip_existing=skip_existing,
        report=report,
        fail_on_error=fail_on_error,
    )


@app.command()
def config() -> None:
    """Print resolved config."""
    try:
        settings = _load_settings()
    except CaptionBatchError as err:
        _fail(err)
    typer.echo(json.dumps(settings.to_public_dict(), indent=2))


@app.command()
def doctor() -> None:
    """Run environment diagnostics."""
    try:
        settings = _load_settings()
        code = run_doctor(settings)
    except CaptionBatchError as err:
        _fail(err)
    raise typer.Exit(code=code)


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
