from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class DimensionSource(str, Enum):
    CSV = "csv"
    PROBE = "probe"
    DEFAULT = "default"


@dataclass(frozen=True)
class RawCaptionJob:
    """One manifest row, exactly as written (times already parsed)."""

    filename: str
    start_time: float
    end_time: float
    text: str
    width: int | None = None
    height: int | None = None
    output_name: str | None = None
    line_number: int | None = None


@dataclass(frozen=True)
class ResolvedCaptionJob:
    input_path: Path
    output_path: Path
    text: str
    width: int
    height: int
    start_time: float
    end_time: float
    dimension_source: DimensionSource = DimensionSource.DEFAULT
    line_number: int | None = None

    @property
    def label(self) -> str:
        return f"{self.input_path.name} → {self.output_path.name}"
