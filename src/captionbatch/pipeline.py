"""
Run orchestration for captionbatch.

A run takes jobs from one source:

1) a CSV manifest (one job per row)
2) a directory scan (one shared caption for every .mp4/.mov file)
3) the single configured input video

and for each job, strictly one at a time:

- resolves paths, text and dimensions
- builds the drawtext filter
- runs ffmpeg and records the outcome

Responsibilities:
- Create the output directory once, before the first job
- Turn per-row and per-job errors into failed tally entries
- Print progress lines and the final summary

Does NOT:
- Parse command-line flags (cli/ does)
- Know ffmpeg's argument syntax (utils/ffmpeg.py does)
"""

from __future__ import annotations

import io
import shlex
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

import typer

from captionbatch.config.settings import Settings
from captionbatch.domain.jobs import RawCaptionJob, ResolvedCaptionJob
from captionbatch.domain.summary import JobRecord, JobTiming, Outcome, RunSummary
from captionbatch.exceptions import (
    CaptionBatchError,
    InputNotFoundError,
    NoFilesFoundError,
    OutputPathError,
    RowValidationError,
)
from captionbatch.services.manifest import ensure_manifest, open_manifest, read_manifest_text
from captionbatch.services.overlay import build_filter
from captionbatch.services.render import Renderer, RenderService
from captionbatch.services.resolver import Probe, no_probe, resolve_job
from captionbatch.utils import ffmpeg
from captionbatch.utils.logging import get_logger
from captionbatch.utils.timing import Clock, format_elapsed, utc_now

log = get_logger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".mov"}
RULE = "================================"

Echo = Callable[..., None]


def _display_time(dt: datetime) -> str:
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def find_videos(directory: Path | str) -> list[Path]:
    """Non-recursive, case-insensitive .mp4/.mov scan, sorted by name."""
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(
        (p for p in root.iterdir() if p.is_file() and p.suffix.lower() in VIDEO_EXTENSIONS),
        key=lambda p: p.name,
    )


class CaptionPipeline:
    """
    Sequential caption runner.

    Notes:
    - `probe` and `renderer` are injected so runs can be tested without ffmpeg.
    - Settings are read, never modified.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        probe: Probe = ffmpeg.probe_dimensions,
        renderer: Renderer | None = None,
        echo: Echo = typer.echo,
        clock: Clock = utc_now,
        verbose: bool = False,
        skip_existing: bool = False,
    ) -> None:
        self.settings = settings
        self.probe = probe
        self.renderer = renderer or RenderService()
        self.echo = echo
        self.clock = clock
        self.verbose = verbose
        self.skip_existing = skip_existing
        self.output_dir = Path(settings.output_dir)

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------
    def run_manifest(
        self,
        manifest_path: Path | str,
        *,
        base_path: str | None = None,
        dry_run: bool = False,
    ) -> RunSummary:
        summary = RunSummary(started_at=self.clock(), dry_run=dry_run)
        manifest = ensure_manifest(manifest_path)

        reader = open_manifest(io.StringIO(read_manifest_text(manifest), newline=None))

        self._banner("DRY RUN MODE - No files will be processed" if dry_run else "CSV PROCESSING MODE")
        self.echo(f"Started: {_display_time(summary.started_at)}")
        self.echo(f"CSV file: {manifest}")
        self.echo(f"Output directory: {self.output_dir}")
        if base_path:
            self.echo(f"Base path: {base_path} (will be prepended to filenames)")
        else:
            self.echo("Using paths from CSV as-is")
        self.echo("")
        self.echo("Column mapping:")
        for line in reader.columns.describe():
            self.echo(line)
        self.echo("")

        self._prepare_output_dir()
        self._run_jobs(
            reader.jobs(on_invalid=lambda err: self._reject_row(err, summary)),
            summary,
            base_path=base_path,
            dry_run=dry_run,
        )

        return self._finish(summary, title="CSV processing complete!")

    def run_directory(
        self,
        directory: Path | str | None = None,
        *,
        dry_run: bool = False,
    ) -> RunSummary:
        summary = RunSummary(started_at=self.clock(), dry_run=dry_run)
        source = Path(directory if directory is not None else self.settings.input_directory)

        self._banner("BATCH PROCESSING MODE")
        self.echo(f"Input directory: {source}")
        self.echo(f"Output directory: {self.output_dir}")
        self.echo("")

        videos = find_videos(source)
        if not videos:
            raise NoFilesFoundError(source)
        self.echo(f"Found {len(videos)} video file(s) to process")
        self.echo("")

        self._prepare_output_dir()
        jobs = (
            RawCaptionJob(
                filename=str(video),
                start_time=self.settings.start_time,
                end_time=self.settings.end_time,
                text=self.settings.text,
                line_number=index,
            )
            for index, video in enumerate(videos, start=1)
        )
        self._run_jobs(jobs, summary, base_path=None, dry_run=dry_run)
        return self._finish(summary, title="Batch processing complete!")

    def run_single(self, *, dry_run: bool = False) -> RunSummary:
        summary = RunSummary(started_at=self.clock(), dry_run=dry_run)
        self._banner("SINGLE FILE MODE")
        self._prepare_output_dir()
        job = RawCaptionJob(
            filename=self.settings.input_video,
            start_time=self.settings.start_time,
            end_time=self.settings.end_time,
            text=self.settings.text,
            output_name=self.settings.output_video,
        )
        self._run_jobs([job], summary, base_path=None, dry_run=dry_run)
        return self._finish(summary, title="Done!")

    # ------------------------------------------------------------------
    # Job loop
    # ------------------------------------------------------------------
    def _prepare_output_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _run_jobs(
        self,
        jobs: Iterable[RawCaptionJob],
        summary: RunSummary,
        *,
        base_path: str | None,
        dry_run: bool,
    ) -> None:
        for raw in jobs:
            started_at = self.clock()
            record = self._run_job(raw, summary, base_path=base_path, dry_run=dry_run)
            summary.record(record)
            summary.timings.append(JobTiming(Path(raw.filename).name, started_at, self.clock(), record.outcome))

    def _run_job(
        self,
        raw: RawCaptionJob,
        summary: RunSummary,
        *,
        base_path: str | None,
        dry_run: bool,
    ) -> JobRecord:
        ordinal = raw.line_number if raw.line_number is not None else "-"
        try:
            job = resolve_job(
                raw,
                self.settings,
                base_path=base_path,
                output_dir=self.output_dir,
                probe=no_probe if dry_run else self.probe,
            )
        except InputNotFoundError as err:
            log.warning("%s", err)
            self._line_failed(ordinal, raw.filename, err, short="NOT FOUND")
            return JobRecord(ordinal, str(err.path), None, Outcome.FAILED, error=err.message)
        except OutputPathError as err:
            log.warning("%s", err)
            self._line_failed(ordinal, raw.filename, err, short="INVALID OUTPUT")
            return JobRecord(ordinal, raw.filename, str(err.path), Outcome.FAILED, error=err.message)

        if dry_run:
            self.echo(f"[{ordinal}] {job.input_path} → {job.output_path}")
            return JobRecord(ordinal, str(job.input_path), str(job.output_path), Outcome.SUCCEEDED)

        if self.skip_existing and job.output_path.exists():
            self.echo(f"[{ordinal}] {job.label} → SKIPPED (output exists)")
            return JobRecord(ordinal, str(job.input_path), str(job.output_path), Outcome.SKIPPED)

        return self._render(job, ordinal, summary)

    def _render(self, job: ResolvedCaptionJob, ordinal: int | str, summary: RunSummary) -> JobRecord:
        style = self.settings.style
        filter_graph = build_filter(job, style).render()

        if self.verbose:
            self.echo(RULE)
            self.echo(f"Processing: {job.input_path}")
            self.echo(f"Output: {job.output_path}")
            self.echo(f"Text: {job.text}")
            self.echo(f"Timing: {job.start_time:g}s - {job.end_time:g}s")
            self.echo(f"Dimensions: {job.width}x{job.height} ({job.dimension_source.value})")
            cmd = ffmpeg.build_render_cmd(
                job.input_path,
                filter_graph,
                job.output_path,
                duration=style.output_duration,
                verbose=True,
            )
            self.echo(f"Command: {shlex.join(cmd)}")
            self.echo(RULE)
        else:
            self.echo(f"[{ordinal}] {job.label} ... ", nl=False)

        try:
            job.output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            message = f"Cannot create output directory {job.output_path.parent}: {exc}"
            return self._render_failed(job, ordinal, message)

        result = self.renderer.render(
            job.input_path,
            filter_graph,
            job.output_path,
            duration=style.output_duration,
            verbose=self.verbose,
        )

        try:
            result.raise_for_status(job.input_path)
        except CaptionBatchError as err:
            return self._render_failed(job, ordinal, err.message)

        if self.verbose:
            self.echo(f"✓ Success: {job.output_path}")
            self.echo("")
        else:
            elapsed = (self.clock() - summary.started_at).total_seconds()
            self.echo(f"✓ [Elapsed: {format_elapsed(elapsed)}]")
        return JobRecord(ordinal, str(job.input_path), str(job.output_path), Outcome.SUCCEEDED)

    def _render_failed(self, job: ResolvedCaptionJob, ordinal: int | str, message: str) -> JobRecord:
        log.warning("%s", message)
        if self.verbose:
            self.echo(f"✗ Failed: {job.input_path}")
            self.echo("")
        else:
            self.echo("✗ FAILED")
        return JobRecord(ordinal, str(job.input_path), str(job.output_path), Outcome.FAILED, error=message)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def _reject_row(self, err: RowValidationError, summary: RunSummary) -> None:
        log.warning("%s", err)
        name = Path(err.filename).name if err.filename else "(no filename)"
        if self.verbose:
            self.echo(RULE)
            self.echo(f"Skipping row {err.line_number}: {err.message}")
            self.echo(RULE)
            self.echo("")
        else:
            self.echo(f"[{err.line_number}] {name} → ✗ INVALID ROW ({', '.join(err.fields)})")
        summary.record(JobRecord(err.line_number, err.filename, None, Outcome.FAILED, error=err.message))

    def _line_failed(self, ordinal: int | str, filename: str, err: CaptionBatchError, *, short: str) -> None:
        if self.verbose:
            self.echo(RULE)
            self.echo(f"✗ Error: {err.message}")
            self.echo("")
        else:
            self.echo(f"[{ordinal}] {Path(filename).name} ... ✗ {short}")

    def _banner(self, title: str) -> None:
        self.echo(RULE)
        self.echo(title)
        self.echo(RULE)

    def _finish(self, summary: RunSummary, *, title: str) -> RunSummary:
        summary.finish(self.clock())
        self.echo(RULE)
        if summary.dry_run:
            self.echo("Dry run complete!")
            self.echo(f"Would process: {summary.succeeded} file(s)")
            if summary.failed:
                self.echo(f"Problems: {summary.failed}")
        else:
            self.echo(title)
            self.echo("")
            self.echo(f"Started:  {_display_time(summary.started_at)}")
            self.echo(f"Finished: {_display_time(summary.finished_at)}")
            self.echo(f"Duration: {format_elapsed(summary.elapsed_s)}")
            self.echo("")
            self.echo(f"Processed: {summary.processed} file(s)")
            self.echo(f"Success: {summary.succeeded}")
            self.echo(f"Failed: {summary.failed}")
            if summary.skipped:
                self.echo(f"Skipped: {summary.skipped}")
        self.echo(RULE)
        return summary

