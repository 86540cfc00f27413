from __future__ import annotations

import inspect
import os
from pathlib import Path

import pytest
import typer.testing

from captionbatch.services.render import RenderResult


def _patch_clirunner() -> None:
    if "mix_stderr" in inspect.signature(typer.testing.CliRunner).parameters:
        return

    class PatchedCliRunner(typer.testing.CliRunner):
        def __init__(self, *args, **kwargs):  # noqa: ANN002, ANN003
            kwargs.pop("mix_stderr", None)
            super().__init__(*args, **kwargs)

    typer.testing.CliRunner = PatchedCliRunner


_patch_clirunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path: Path) -> Path:
    """No CAPTIONBATCH_* variables or stray .env leak into tests."""
    for key in list(os.environ):
        if key.startswith("CAPTIONBATCH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def make_video(tmp_path: Path):
    def _make(name: str, directory: Path | None = None) -> Path:
        path = (directory or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"fake video")
        return path

    return _make


class FakeRenderer:
    """Records render calls; fails for inputs whose name is in `fail`."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.calls: list[dict] = []

    def render(self, input_path, filter_graph, output_path, *, duration=None, verbose=False):  # noqa: ANN001
        self.calls.append(
            {
                "input": Path(input_path),
                "filter": filter_graph,
                "output": Path(output_path),
                "duration": duration,
            }
        )
        code = 1 if Path(input_path).name in self.fail else 0
        stderr = "boom" if code else ""
        return RenderResult(returncode=code, cmd=("ffmpeg",), stderr=stderr)


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()
