from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from captionbatch import __version__
from captionbatch.config.settings import Settings
from captionbatch.domain.summary import JobRecord, JobTiming, RunSummary


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat()


def _serialize_timings(timings: Iterable[JobTiming]) -> list[dict[str, Any]]:
    return [
        {
            "name": timing.name,
            "started_at": _iso(timing.started_at),
            "finished_at": _iso(timing.finished_at),
            "duration_s": timing.duration_s,
            "outcome": timing.outcome.value,
        }
        for timing in timings
    ]


def _serialize_records(records: Iterable[JobRecord]) -> list[dict[str, Any]]:
    return [
        {
            "ordinal": record.ordinal,
            "input_path": record.input_path,
            "output_path": record.output_path,
            "outcome": record.outcome.value,
            "error": record.error,
        }
        for record in records
    ]


def build_run_report(summary: RunSummary, *, settings: Settings, mode: str) -> dict[str, Any]:
    return {
        "version": __version__,
        "mode": mode,
        "dry_run": summary.dry_run,
        "started_at": _iso(summary.started_at),
        "finished_at": _iso(summary.finished_at),
        "duration_seconds_total": summary.elapsed_s,
        "counts": {
            "processed": summary.processed,
            "succeeded": summary.succeeded,
            "failed": summary.failed,
            "skipped": summary.skipped,
        },
        "settings_public": settings.to_public_dict(),
        "jobs": _serialize_records(summary.records),
        "timings": _serialize_timings(summary.timings),
    }


def write_run_report(summary: RunSummary, path: Path | str, *, settings: Settings, mode: str) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = build_run_report(summary, settings=settings, mode=mode)
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out
