"""
ffmpeg invocation for one caption job.

The filter is passed as a single argument in an argv list, never through a
shell, so caption text and file names cannot inject commands. Failures come
back as a RenderResult; nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from captionbatch.exceptions import RenderFailure
from captionbatch.utils import ffmpeg
from captionbatch.utils.logging import get_logger

log = get_logger(__name__)

STDERR_TAIL_LINES = 20


@dataclass(frozen=True)
class RenderResult:
    returncode: int
    cmd: tuple[str, ...]
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def raise_for_status(self, input_path: Path | str) -> None:
        if not self.ok:
            raise RenderFailure(input_path, self.returncode, self.stderr)


class Renderer(Protocol):
    def render(
        self,
        input_path: Path,
        filter_graph: str,
        output_path: Path,
        *,
        duration: float | None = None,
        verbose: bool = False,
    ) -> RenderResult: ...


def _tail(text: str | None, lines: int = STDERR_TAIL_LINES) -> str:
    if not text:
        return ""
    return "\n".join(text.strip().splitlines()[-lines:])


@dataclass
class RenderService:
    """
    Runs ffmpeg and reports its exit status.

    In verbose mode ffmpeg writes straight to the terminal; otherwise its
    output is captured and the tail of stderr is kept for the failure report.
    """

    def render(
        self,
        input_path: Path,
        filter_graph: str,
        output_path: Path,
        *,
        duration: float | None = None,
        verbose: bool = False,
    ) -> RenderResult:
        cmd = ffmpeg.build_render_cmd(
            input_path,
            filter_graph,
            output_path,
            duration=duration,
            verbose=verbose,
        )
        log.debug("ffmpeg cmd: %s", cmd)

        try:
            proc = ffmpeg.run_ffmpeg(cmd, capture=not verbose)
        except FileNotFoundError:
            log.error("ffmpeg executable not found")
            return RenderResult(returncode=127, cmd=tuple(cmd), stderr="ffmpeg not found")
        except (OSError, ValueError) as exc:
            # ValueError: an argument holds a NUL byte and cannot reach exec.
            log.error("ffmpeg could not be started for %s: %s", input_path, exc)
            return RenderResult(returncode=1, cmd=tuple(cmd), stderr=str(exc))

        stderr = "" if verbose else _tail(proc.stderr)
        if proc.returncode != 0:
            log.error("ffmpeg exited with %s for %s", proc.returncode, input_path)
        return RenderResult(returncode=proc.returncode, cmd=tuple(cmd), stderr=stderr)
