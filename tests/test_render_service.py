from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from captionbatch.exceptions import RenderFailure
from captionbatch.services import render as render_module
from captionbatch.services.render import RenderResult, RenderService


def test_render_captures_output_and_keeps_stderr_tail(monkeypatch) -> None:
    seen: dict = {}
    stderr = "\n".join(f"line {i}" for i in range(40))

    def fake_run(cmd, *, capture):  # noqa: ANN001
        seen["cmd"] = cmd
        seen["capture"] = capture
        return SimpleNamespace(returncode=1, stdout="", stderr=stderr)

    monkeypatch.setattr(render_module.ffmpeg, "run_ffmpeg", fake_run)

    result = RenderService().render(Path("in.mp4"), "drawtext=text=Hi", Path("out.mp4"))

    assert seen["capture"] is True
    assert seen["cmd"][-1] == "out.mp4"
    assert not result.ok
    assert result.stderr.splitlines() == [f"line {i}" for i in range(20, 40)]


def test_verbose_render_streams_output(monkeypatch) -> None:
    captured: list[bool] = []

    def fake_run(cmd, *, capture):  # noqa: ANN001
        captured.append(capture)
        return SimpleNamespace(returncode=0, stdout=None, stderr=None)

    monkeypatch.setattr(render_module.ffmpeg, "run_ffmpeg", fake_run)

    result = RenderService().render(Path("in.mp4"), "f", Path("out.mp4"), verbose=True)

    assert captured == [False]
    assert result.ok
    assert result.stderr == ""


def test_missing_ffmpeg_is_a_failed_result(monkeypatch) -> None:
    def missing(cmd, *, capture):  # noqa: ANN001
        raise FileNotFoundError

    monkeypatch.setattr(render_module.ffmpeg, "run_ffmpeg", missing)

    result = RenderService().render(Path("in.mp4"), "f", Path("out.mp4"))
    assert result.returncode == 127


def test_raise_for_status() -> None:
    RenderResult(returncode=0, cmd=()).raise_for_status("in.mp4")

    with pytest.raises(RenderFailure) as excinfo:
        RenderResult(returncode=2, cmd=(), stderr="bad filter").raise_for_status("in.mp4")
    assert "exit status 2" in excinfo.value.message
    assert "bad filter" in excinfo.value.message


def test_argument_that_cannot_be_executed_is_a_failed_result(monkeypatch) -> None:
    def fake_subprocess_run(cmd, **_kwargs):  # noqa: ANN001, ANN003
        raise ValueError("embedded null byte")

    monkeypatch.setattr(render_module.ffmpeg.subprocess, "run", fake_subprocess_run)

    result = RenderService().render(Path("in.mp4"), "drawtext=text=Bad\x00Text", Path("out.mp4"))

    assert result.returncode == 1
    assert result.stderr == "embedded null byte"
