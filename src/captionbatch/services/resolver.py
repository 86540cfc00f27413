"""
Turn a RawCaptionJob into a ResolvedCaptionJob: concrete paths, decoded text
and the frame size the overlay is positioned against.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from captionbatch.config.settings import Settings
from captionbatch.domain.jobs import DimensionSource, RawCaptionJob, ResolvedCaptionJob
from captionbatch.exceptions import InputNotFoundError, OutputPathError
from captionbatch.utils.logging import get_logger

log = get_logger(__name__)

Probe = Callable[[Path], Optional[tuple[int, int]]]


def no_probe(_path: Path) -> None:
    return None


def decode_text(text: str) -> str:
    # Double-escaped first so "\\n" does not leave a stray backslash behind.
    return text.replace("\\\\n", "\n").replace("\\n", "\n")


def resolve_input_path(filename: str, base_path: str | Path | None) -> Path:
    if base_path:
        return Path(f"{base_path}/{filename}")
    return Path(filename)


def _has_extension(name: str) -> bool:
    return "." in name.rsplit("/", 1)[-1]


def derive_output_path(
    input_name: str,
    output_dir: str | Path,
    *,
    output_name: str | None = None,
    suffix: str = "_text",
) -> Path:
    """
    Custom names keep their own extension or borrow the input's; without a
    custom name the output is `<stem><suffix><ext>` in the output directory.
    """
    source = Path(Path(input_name).name)
    out_dir = Path(output_dir)
    if output_name:
        if _has_extension(output_name):
            return out_dir / output_name
        return out_dir / f"{output_name}{source.suffix}"
    return out_dir / f"{source.stem}{suffix}{source.suffix}"


def _check_inside(path: Path, output_dir: Path) -> None:
    try:
        root = output_dir.expanduser().resolve()
        inside = path.expanduser().resolve().is_relative_to(root)
    except (OSError, ValueError):
        inside = False
    if not inside:
        raise OutputPathError(path, output_dir)


def resolve_dimensions(
    raw: RawCaptionJob,
    input_path: Path,
    settings: Settings,
    probe: Probe,
) -> tuple[int, int, DimensionSource]:
    # A single CSV dimension is ignored: both axes always come from one source.
    if raw.width is not None and raw.height is not None:
        return raw.width, raw.height, DimensionSource.CSV
    if (raw.width is None) != (raw.height is None):
        log.warning(
            "Row %s gives only one of VIDEO_WIDTH/VIDEO_HEIGHT; ignoring it.",
            raw.line_number,
        )

    detected = probe(input_path)
    if detected is not None:
        width, height = detected
        if (width, height) != (settings.video_width, settings.video_height):
            log.debug(
                "Using detected dimensions %sx%s instead of configured %sx%s",
                width,
                height,
                settings.video_width,
                settings.video_height,
            )
        return width, height, DimensionSource.PROBE

    return settings.video_width, settings.video_height, DimensionSource.DEFAULT


def resolve_job(
    raw: RawCaptionJob,
    settings: Settings,
    *,
    base_path: str | Path | None = None,
    output_dir: str | Path | None = None,
    probe: Probe = no_probe,
) -> ResolvedCaptionJob:
    """
    Resolve one job.

    Raises InputNotFoundError before probing when the input is missing, and
    OutputPathError when a custom output name points outside the output
    directory.
    """
    out_dir = Path(output_dir if output_dir is not None else settings.output_dir)
    input_path = resolve_input_path(raw.filename, base_path)
    output_path = derive_output_path(
        raw.filename,
        out_dir,
        output_name=raw.output_name,
        suffix=settings.output_suffix,
    )
    _check_inside(output_path, out_dir)

    if not input_path.is_file():
        raise InputNotFoundError(input_path)

    width, height, source = resolve_dimensions(raw, input_path, settings, probe)

    return ResolvedCaptionJob(
        input_path=input_path,
        output_path=output_path,
        text=decode_text(raw.text),
        width=width,
        height=height,
        start_time=raw.start_time,
        end_time=raw.end_time,
        dimension_source=source,
        line_number=raw.line_number,
    )
