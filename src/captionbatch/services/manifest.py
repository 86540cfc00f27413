"""
CSV manifest loading.

The first line is a header; columns are found by exact, case-sensitive name so
their order does not matter. Each later non-empty line becomes one
RawCaptionJob. Fields are split on plain commas: quoted fields are not
supported, so a comma inside TEXT shifts the columns after it.

Responsibilities:
- Resolve column indices and fail fast on a missing required column
- Validate each row, reporting bad rows without stopping the stream

Does NOT:
- Touch input videos or the output directory
- Decode newline escapes (the resolver does)
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, TextIO

from captionbatch.domain.jobs import RawCaptionJob
from captionbatch.exceptions import (
    ManifestEncodingError,
    ManifestNotFoundError,
    ManifestSchemaError,
    RowValidationError,
)
from captionbatch.utils.logging import get_logger

log = get_logger(__name__)

FILENAME = "filename"
START_TIME = "START_TIME"
END_TIME = "END_TIME"
TEXT = "TEXT"
VIDEO_WIDTH = "VIDEO_WIDTH"
VIDEO_HEIGHT = "VIDEO_HEIGHT"
FILENAME_OUTPUT = "FILENAME_OUTPUT"

REQUIRED_COLUMNS = (FILENAME, START_TIME, END_TIME, TEXT)
OPTIONAL_COLUMNS = (VIDEO_WIDTH, VIDEO_HEIGHT, FILENAME_OUTPUT)

InvalidRowHandler = Callable[[RowValidationError], None]


def split_line(line: str) -> list[str]:
    return [field.strip() for field in line.replace("\r", "").rstrip("\n").split(",")]


@dataclass(frozen=True)
class ColumnMap:
    filename: int
    start_time: int
    end_time: int
    text: int
    width: int | None = None
    height: int | None = None
    output_name: int | None = None

    @classmethod
    def from_headers(cls, headers: list[str]) -> "ColumnMap":
        index: dict[str, int] = {}
        for i, name in enumerate(headers):
            if name in REQUIRED_COLUMNS or name in OPTIONAL_COLUMNS:
                index.setdefault(name, i)

        missing = [name for name in REQUIRED_COLUMNS if name not in index]
        if missing:
            raise ManifestSchemaError(missing=missing, found=headers)

        return cls(
            filename=index[FILENAME],
            start_time=index[START_TIME],
            end_time=index[END_TIME],
            text=index[TEXT],
            width=index.get(VIDEO_WIDTH),
            height=index.get(VIDEO_HEIGHT),
            output_name=index.get(FILENAME_OUTPUT),
        )

    def describe(self) -> list[str]:
        lines = [
            f"  {FILENAME}: column {self.filename + 1}",
            f"  {START_TIME}: column {self.start_time + 1}",
            f"  {END_TIME}: column {self.end_time + 1}",
            f"  {TEXT}: column {self.text + 1}",
        ]
        for name, idx in (
            (VIDEO_WIDTH, self.width),
            (VIDEO_HEIGHT, self.height),
            (FILENAME_OUTPUT, self.output_name),
        ):
            if idx is not None:
                lines.append(f"  {name}: column {idx + 1} (optional)")
        return lines


def _cell(fields: list[str], idx: int | None) -> str:
    if idx is None or idx >= len(fields):
        return ""
    return fields[idx]


def _parse_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        number = _parse_float(value)
        if number is not None and number.is_integer():
            return int(number)
        return None


def parse_row(fields: list[str], columns: ColumnMap, line_number: int) -> RawCaptionJob:
    """Build a RawCaptionJob from split fields or raise RowValidationError."""
    filename = _cell(fields, columns.filename)
    raw_start = _cell(fields, columns.start_time)
    raw_end = _cell(fields, columns.end_time)
    text = _cell(fields, columns.text)

    empty = [
        name
        for name, value in (
            (FILENAME, filename),
            (START_TIME, raw_start),
            (END_TIME, raw_end),
            (TEXT, text),
        )
        if not value
    ]
    if empty:
        raise RowValidationError(line_number, empty, filename=filename)

    start = _parse_float(raw_start)
    end = _parse_float(raw_end)
    bad_numbers = [name for name, value in ((START_TIME, start), (END_TIME, end)) if value is None]
    if bad_numbers:
        raise RowValidationError(line_number, bad_numbers, filename=filename, reason="Not a number")
    if end <= start:
        raise RowValidationError(
            line_number,
            [START_TIME, END_TIME],
            filename=filename,
            reason=f"END_TIME ({raw_end}) must be greater than START_TIME ({raw_start})",
        )

    raw_width = _cell(fields, columns.width)
    raw_height = _cell(fields, columns.height)
    width = _parse_int(raw_width) if raw_width else None
    height = _parse_int(raw_height) if raw_height else None
    bad_dims = [
        name
        for name, raw, value in ((VIDEO_WIDTH, raw_width, width), (VIDEO_HEIGHT, raw_height, height))
        if raw and (value is None or value <= 0)
    ]
    if bad_dims:
        raise RowValidationError(line_number, bad_dims, filename=filename, reason="Not a positive integer")

    return RawCaptionJob(
        filename=filename,
        start_time=start,
        end_time=end,
        text=text,
        width=width,
        height=height,
        output_name=_cell(fields, columns.output_name) or None,
        line_number=line_number,
    )


class ManifestReader:
    """
    A validated manifest header over an open handle.

    Iterating consumes the handle, so jobs can be read once.
    """

    def __init__(self, handle: TextIO, headers: list[str], columns: ColumnMap) -> None:
        self._handle = handle
        self.headers = headers
        self.columns = columns

    def jobs(self, on_invalid: InvalidRowHandler | None = None) -> Iterator[RawCaptionJob]:
        line_number = 1
        for line in self._handle:
            line_number += 1
            if not line.replace("\r", "").strip():
                continue
            try:
                job = parse_row(split_line(line), self.columns, line_number)
            except RowValidationError as err:
                log.debug("Rejected manifest row: %s", err)
                if on_invalid is not None:
                    on_invalid(err)
                continue
            yield job


def open_manifest(handle: TextIO) -> ManifestReader:
    """Read the header line and resolve columns; raises ManifestSchemaError."""
    header_line = handle.readline().lstrip("\ufeff")
    headers = split_line(header_line) if header_line.strip() else []
    columns = ColumnMap.from_headers(headers)
    log.debug("Manifest columns: %s", columns)
    return ManifestReader(handle, headers, columns)


def ensure_manifest(path: Path | str) -> Path:
    manifest = Path(path)
    if not manifest.is_file():
        raise ManifestNotFoundError(manifest)
    return manifest


def read_manifest_text(path: Path | str) -> str:
    """Decode the whole manifest up front so a bad byte fails the run before any job."""
    manifest = Path(path)
    data = manifest.read_bytes()
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8) :]
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        line_number = data[: exc.start].count(b"\n") + 1
        raise ManifestEncodingError(manifest, line_number, exc.reason) from exc
