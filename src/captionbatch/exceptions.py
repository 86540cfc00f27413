from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence


class ErrorCategory(str, Enum):
    CONFIG = "config"
    DEPENDENCY = "dependency"
    RUNTIME = "runtime"
    INPUT = "input"


DEFAULT_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.RUNTIME: 1,
    ErrorCategory.CONFIG: 2,
    ErrorCategory.DEPENDENCY: 3,
    ErrorCategory.INPUT: 4,
}


@dataclass
class CaptionBatchError(Exception):
    """Base exception for captionbatch with standardized categories."""

    message: str
    category: ErrorCategory = ErrorCategory.RUNTIME
    exit_code: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.exit_code is None:
            self.exit_code = DEFAULT_EXIT_CODES.get(self.category, 1)

    def __str__(self) -> str:
        return self.message

    def label(self) -> str:
        return {
            ErrorCategory.CONFIG: "Configuration error",
            ErrorCategory.DEPENDENCY: "Dependency error",
            ErrorCategory.RUNTIME: "Runtime error",
            ErrorCategory.INPUT: "Input error",
        }.get(self.category, "Error")


class ConfigurationError(CaptionBatchError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message, category=ErrorCategory.CONFIG, exit_code=exit_code)


class DependencyMissingError(CaptionBatchError):
    """Raised when a required external binary is missing."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message, category=ErrorCategory.DEPENDENCY, exit_code=exit_code)


# ----------------------------------------------------------------------
# Fatal: abort the run before the job loop starts
# ----------------------------------------------------------------------
class ManifestNotFoundError(CaptionBatchError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"CSV file not found: {path}", category=ErrorCategory.INPUT)


class ManifestEncodingError(CaptionBatchError):
    """The manifest is not valid UTF-8 (e.g. a cp1252 export)."""

    def __init__(self, path: Path | str, line_number: int, reason: str = "") -> None:
        self.path = Path(path)
        self.line_number = line_number
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"CSV file {path} is not valid UTF-8 at line {line_number}{detail}. Re-save it as UTF-8.",
            category=ErrorCategory.INPUT,
        )


class ManifestSchemaError(CaptionBatchError):
    """Raised when the manifest header lacks a required column."""

    def __init__(self, missing: Sequence[str], found: Sequence[str]) -> None:
        self.missing = list(missing)
        self.found = list(found)
        found_desc = ", ".join(f"[{h}]" for h in self.found) or "(none)"
        super().__init__(
            "CSV must contain columns: filename, START_TIME, END_TIME, TEXT. "
            f"Missing: {', '.join(self.missing)}. Found column headers: {found_desc}",
            category=ErrorCategory.CONFIG,
        )


class NoFilesFoundError(CaptionBatchError):
    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        super().__init__(f"No video files found in {directory}", category=ErrorCategory.INPUT)


# ----------------------------------------------------------------------
# Per-job: logged, tallied as failed, the run continues
# ----------------------------------------------------------------------
class RowValidationError(CaptionBatchError):
    """A manifest row is missing or has malformed required fields."""

    def __init__(self, line_number: int, fields: Sequence[str], *, filename: str = "", reason: str = "") -> None:
        self.line_number = line_number
        self.fields = list(fields)
        self.filename = filename
        detail = reason or "Missing required fields"
        super().__init__(f"Row {line_number}: {detail}: {', '.join(self.fields)}")


class InputNotFoundError(CaptionBatchError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Input file not found: {path}")


class OutputPathError(CaptionBatchError):
    def __init__(self, path: Path | str, output_dir: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Output path {path} escapes output directory {output_dir}")


class RenderFailure(CaptionBatchError):
    """ffmpeg exited with a non-zero status."""

    def __init__(self, input_path: Path | str, returncode: int, stderr: str = "") -> None:
        self.input_path = Path(input_path)
        self.returncode = returncode
        self.stderr = stderr
        message = f"ffmpeg failed for {input_path} (exit status {returncode})"
        if stderr:
            message += f"\nSTDERR:\n{stderr}"
        super().__init__(message)
