from __future__ import annotations

from captionbatch.exceptions import (
    CaptionBatchError,
    ConfigurationError,
    DependencyMissingError,
    ErrorCategory,
    InputNotFoundError,
    ManifestSchemaError,
    NoFilesFoundError,
    RowValidationError,
)


def test_error_defaults() -> None:
    err = CaptionBatchError("boom")
    assert err.category == ErrorCategory.RUNTIME
    assert err.exit_code == 1
    assert err.label() == "Runtime error"
    assert str(err) == "boom"


def test_categories_map_to_exit_codes() -> None:
    assert ConfigurationError("bad").exit_code == 2
    assert DependencyMissingError("missing").exit_code == 3
    assert NoFilesFoundError("in").exit_code == 4
    assert ManifestSchemaError(["TEXT"], ["filename"]).label() == "Configuration error"


def test_explicit_exit_code_wins() -> None:
    assert ConfigurationError("bad", exit_code=9).exit_code == 9


def test_per_job_errors_are_runtime() -> None:
    assert InputNotFoundError("a.mp4").category == ErrorCategory.RUNTIME
    err = RowValidationError(3, ["TEXT"], filename="a.mp4")
    assert err.message == "Row 3: Missing required fields: TEXT"
