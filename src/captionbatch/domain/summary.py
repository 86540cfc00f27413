from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Outcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class JobRecord:
    ordinal: int | str
    input_path: str
    output_path: str | None
    outcome: Outcome
    error: str | None = None


@dataclass(frozen=True)
class JobTiming:
    """Wall-clock span of one job and how it ended."""

    name: str
    started_at: datetime
    finished_at: datetime
    outcome: Outcome

    @property
    def duration_s(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class RunSummary:
    """Tally for one run. Counters only grow; `finish` is called once."""

    started_at: datetime
    dry_run: bool = False
    finished_at: datetime | None = None
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    records: list[JobRecord] = field(default_factory=list)
    timings: list[JobTiming] = field(default_factory=list)

    def record(self, record: JobRecord) -> None:
        if record.outcome is Outcome.SUCCEEDED:
            self.succeeded += 1
        elif record.outcome is Outcome.FAILED:
            self.failed += 1
        else:
            self.skipped += 1
        self.records.append(record)

    def finish(self, finished_at: datetime) -> "RunSummary":
        self.finished_at = finished_at
        return self

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    @property
    def elapsed_s(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def output_paths(self) -> list[str]:
        return [r.output_path for r in self.records if r.output_path]
