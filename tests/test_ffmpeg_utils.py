from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from captionbatch.exceptions import DependencyMissingError
from captionbatch.utils import checks, ffmpeg


def test_build_render_cmd_quiet() -> None:
    cmd = ffmpeg.build_render_cmd("in.mp4", "drawtext=text=Hi", "out/in_text.mp4")

    assert cmd == [
        "ffmpeg",
        "-y",
        "-nostdin",
        "-hide_banner",
        "-loglevel",
        "error",
        "-stats",
        "-i",
        "in.mp4",
        "-vf",
        "drawtext=text=Hi",
        "out/in_text.mp4",
    ]


def test_build_render_cmd_verbose_with_duration() -> None:
    cmd = ffmpeg.build_render_cmd("in.mp4", "f", "out.mp4", duration=5.0, verbose=True)
    precise = ffmpeg.build_render_cmd("in.mp4", "f", "out.mp4", duration=12.3456789)

    assert "-loglevel" not in cmd
    assert cmd[cmd.index("-t") + 1] == "5"
    assert precise[precise.index("-t") + 1] == "12.3456789"
    assert cmd[-1] == "out.mp4"


def test_filter_is_a_single_argument() -> None:
    graph = "drawtext=text=a; rm -rf /"
    cmd = ffmpeg.build_render_cmd("in.mp4", graph, "out.mp4")
    assert graph in cmd


def test_escape_filter_value_levels() -> None:
    assert ffmpeg.escape_filter_value("a:b") == "a\\\\:b"
    assert ffmpeg.escape_filter_value("a,b") == "a\\,b"
    assert ffmpeg.escape_filter_value("[x]") == "\\[x\\]"
    assert ffmpeg.escape_drawtext_text("100%") == "100\\%"


def test_probe_dimensions_parses_json(monkeypatch) -> None:
    payload = json.dumps({"streams": [{"width": 720, "height": 1280}]})

    def fake_run(cmd, capture_output, text):  # noqa: ANN001
        assert "stream=width,height" in cmd
        return SimpleNamespace(returncode=0, stdout=payload, stderr="")

    monkeypatch.setattr(ffmpeg.shutil, "which", lambda _: "ffprobe")
    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)

    assert ffmpeg.probe_dimensions("clip.mp4") == (720, 1280)


@pytest.mark.parametrize(
    ("returncode", "stdout"),
    [(1, ""), (0, "not json"), (0, json.dumps({"streams": []})), (0, json.dumps({"streams": [{"width": 0}]}))],
)
def test_probe_dimensions_failures_return_none(monkeypatch, returncode: int, stdout: str) -> None:
    monkeypatch.setattr(ffmpeg.shutil, "which", lambda _: "ffprobe")
    monkeypatch.setattr(
        ffmpeg.subprocess,
        "run",
        lambda *_a, **_k: SimpleNamespace(returncode=returncode, stdout=stdout, stderr="err"),
    )

    assert ffmpeg.probe_dimensions("clip.mp4") is None


def test_probe_dimensions_without_ffprobe(monkeypatch) -> None:
    monkeypatch.setattr(ffmpeg.shutil, "which", lambda _: None)
    assert ffmpeg.probe_dimensions("clip.mp4") is None


def test_require_binary_missing(monkeypatch) -> None:
    monkeypatch.setattr(checks.shutil, "which", lambda _: None)

    with pytest.raises(DependencyMissingError) as excinfo:
        checks.require_binary("ffmpeg")
    assert "ffmpeg renders the captions" in excinfo.value.message
    assert excinfo.value.exit_code == 3


def test_tool_version_first_line(monkeypatch) -> None:
    monkeypatch.setattr(
        ffmpeg.subprocess,
        "run",
        lambda *_a, **_k: SimpleNamespace(returncode=0, stdout="ffmpeg version 6.1\nbuilt with gcc", stderr=""),
    )
    assert ffmpeg.tool_version("ffmpeg") == "ffmpeg version 6.1"


def test_tool_version_not_installed(monkeypatch) -> None:
    def missing(*_a, **_k):  # noqa: ANN002, ANN003
        raise FileNotFoundError

    monkeypatch.setattr(ffmpeg.subprocess, "run", missing)
    assert ffmpeg.tool_version("ffprobe") is None
