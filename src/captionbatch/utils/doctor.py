from __future__ import annotations

import sys
import tempfile
from pathlib import Path

from captionbatch.config.settings import Settings
from captionbatch.utils.ffmpeg import tool_version


def _check_writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path, delete=True):
            return True
    except OSError:
        return False


def _get_version() -> str:
    try:
        import importlib.metadata

        return importlib.metadata.version("captionbatch")
    except Exception:
        return "unknown"


def _status_line(ok: bool, label: str, detail: str = "") -> str:
    icon = "✅" if ok else "❌"
    return f"{icon} {label}{detail}"


def _warn_line(label: str, detail: str = "") -> str:
    return f"⚠️ {label}{detail}"


def run_doctor(settings: Settings) -> int:
    """Print an environment report; 0 when ffmpeg is usable and the output dir is writable."""
    required_ok = True
    lines: list[str] = ["captionbatch doctor", ""]

    lines.append(_status_line(True, "Python", f": {sys.version.split()[0]}"))
    lines.append(_status_line(True, "captionbatch version", f": {_get_version()}"))

    output_dir = Path(settings.output_dir).expanduser().resolve()
    writable = _check_writable(output_dir)
    if not writable:
        required_ok = False
    lines.append(_status_line(writable, "Output dir writable", f": {output_dir}"))

    ffmpeg_version = tool_version("ffmpeg")
    if ffmpeg_version is None:
        required_ok = False
        lines.append(_status_line(False, "ffmpeg", " (not found)"))
    else:
        lines.append(_status_line(True, "ffmpeg", f": {ffmpeg_version}"))

    # Without ffprobe, dimensions fall back to the configured defaults.
    ffprobe_version = tool_version("ffprobe")
    if ffprobe_version is None:
        lines.append(_warn_line("ffprobe", f" (not found; using {settings.video_width}x{settings.video_height})"))
    else:
        lines.append(_status_line(True, "ffprobe", f": {ffprobe_version}"))

    style = settings.style
    lines.append(
        _status_line(
            True,
            "Style",
            f": {style.font_file} {style.font_size}pt {style.font_color}, effect={style.effect_type.value}",
        )
    )

    print("\n".join(lines))
    return 0 if required_ok else 1
