from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

from captionbatch.utils.checks import require_binary
from captionbatch.utils.expr import format_number
from captionbatch.utils.logging import get_logger

log = get_logger(__name__)

# Characters with meaning at each parsing level of a -vf argument.
_OPTION_SPECIALS = "\\':"
_GRAPH_SPECIALS = "\\'[],;"


def ensure_ffmpeg() -> None:
    require_binary("ffmpeg")


def _backslash_escape(value: str, specials: str) -> str:
    return "".join(f"\\{ch}" if ch in specials else ch for ch in value)


def escape_drawtext_text(value: str) -> str:
    """drawtext expands `%{...}` and backslash sequences inside `text`."""
    return value.replace("\\", "\\\\").replace("%", "\\%")


def escape_filter_value(value: str) -> str:
    """Escape one option value for the option parser, then for the filtergraph parser."""
    return _backslash_escape(_backslash_escape(value, _OPTION_SPECIALS), _GRAPH_SPECIALS)


def build_render_cmd(
    input_path: str | Path,
    filter_graph: str,
    output_path: str | Path,
    *,
    duration: float | None = None,
    verbose: bool = False,
) -> list[str]:
    cmd: list[str] = ["ffmpeg", "-y", "-nostdin"]
    if not verbose:
        cmd += ["-hide_banner", "-loglevel", "error", "-stats"]
    cmd += ["-i", str(input_path), "-vf", filter_graph]
    if duration is not None:
        cmd += ["-t", format_number(duration)]
    cmd.append(str(output_path))
    return cmd


def run_ffmpeg(cmd: list[str], *, capture: bool = True) -> subprocess.CompletedProcess[str]:
    """Run ffmpeg without a shell. The caller decides what a non-zero status means."""
    if capture:
        return subprocess.run(cmd, capture_output=True, text=True)
    return subprocess.run(cmd, text=True)


def probe_dimensions(path: str | Path) -> tuple[int, int] | None:
    """Width and height of the first video stream, or None when ffprobe can't tell."""
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        return None
    proc = subprocess.run(
        [
            ffprobe,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height",
            "-of",
            "json",
            str(path),
        ],
        capture_output=True,
        text=True,
    )
    if proc.returncode != 0:
        log.debug("ffprobe failed for %s: %s", path, proc.stderr.strip())
        return None
    try:
        data = json.loads(proc.stdout)
    except json.JSONDecodeError:
        return None

    for stream in data.get("streams", []):
        width = stream.get("width")
        height = stream.get("height")
        if isinstance(width, int) and isinstance(height, int) and width > 0 and height > 0:
            return width, height
    return None


def tool_version(binary: str) -> str | None:
    """First line of `<binary> -version`, or None when it is not installed."""
    try:
        proc = subprocess.run([binary, "-version"], capture_output=True, text=True)
    except FileNotFoundError:
        return None
    if proc.returncode != 0:
        return None
    out = proc.stdout.strip() or proc.stderr.strip()
    return out.splitlines()[0] if out else "available"
