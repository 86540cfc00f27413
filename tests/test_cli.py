from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from captionbatch.cli.main import app
from captionbatch.exceptions import DependencyMissingError


def _write_manifest(tmp_path: Path, body: str, header: str = "filename,START_TIME,END_TIME,TEXT\n") -> Path:
    path = tmp_path / "videos.csv"
    path.write_text(header + body, encoding="utf-8")
    return path


def test_csv_dry_run(tmp_path: Path, make_video) -> None:
    video = make_video("clip1.mp4")
    manifest = _write_manifest(tmp_path, f"{video},2,10,Hello\n")

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["csv", str(manifest), "--output-dir", str(tmp_path / "out"), "--dry-run"])

    assert result.exit_code == 0
    assert "DRY RUN MODE - No files will be processed" in result.stdout
    assert "clip1_text.mp4" in result.stdout
    assert (tmp_path / "out").is_dir()


def test_missing_manifest_is_input_error(tmp_path: Path) -> None:
    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["csv", str(tmp_path / "nope.csv"), "--dry-run"])

    assert result.exit_code == 4
    assert "Input error: CSV file not found" in result.stderr


def test_missing_column_is_config_error(tmp_path: Path) -> None:
    manifest = _write_manifest(tmp_path, "", header="filename,START_TIME,TEXT\n")

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["csv", str(manifest), "--output-dir", str(tmp_path / "out"), "--dry-run"])

    assert result.exit_code == 2
    assert "Configuration error: CSV must contain columns" in result.stderr
    assert "Found column headers: [filename], [START_TIME], [TEXT]" in result.stderr
    assert not (tmp_path / "out").exists()


def test_failed_jobs_exit_zero_unless_fail_on_error(tmp_path: Path) -> None:
    manifest = _write_manifest(tmp_path, f"{tmp_path / 'missing.mp4'},2,10,Hi\n")
    args = ["csv", str(manifest), "--output-dir", str(tmp_path / "out"), "--dry-run"]

    runner = CliRunner(mix_stderr=False)
    assert runner.invoke(app, args).exit_code == 0
    assert runner.invoke(app, [*args, "--fail-on-error"]).exit_code == 1


def test_missing_ffmpeg_is_dependency_error(monkeypatch, tmp_path: Path, make_video) -> None:
    import captionbatch.cli.main as cli_main

    def fake_ensure() -> None:
        raise DependencyMissingError("ffmpeg missing")

    monkeypatch.setattr(cli_main.ffmpeg, "ensure_ffmpeg", fake_ensure)
    video = make_video("clip1.mp4")
    manifest = _write_manifest(tmp_path, f"{video},2,10,Hello\n")

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["csv", str(manifest)])

    assert result.exit_code == 3
    assert "Dependency error: ffmpeg missing" in result.stderr


def test_invalid_window_is_config_error() -> None:
    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["batch", "--start", "5", "--end", "1", "--dry-run"])

    assert result.exit_code == 2
    assert "Configuration error: Invalid settings" in result.stderr


def test_batch_without_videos_is_input_error(tmp_path: Path) -> None:
    (tmp_path / "in").mkdir()

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["batch", "--input-dir", str(tmp_path / "in"), "--dry-run"])

    assert result.exit_code == 4
    assert "No video files found" in result.stderr


def test_report_is_written(tmp_path: Path, make_video) -> None:
    make_video("in/a.mp4")
    report = tmp_path / "reports" / "run.json"

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(
        app,
        [
            "batch",
            "--input-dir",
            str(tmp_path / "in"),
            "--output-dir",
            str(tmp_path / "out"),
            "--dry-run",
            "--report",
            str(report),
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["mode"] == "batch"
    assert payload["dry_run"] is True
    assert payload["counts"]["succeeded"] == 1
    assert payload["jobs"][0]["output_path"].endswith("a_text.mp4")


def test_config_command_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("CAPTIONBATCH_STYLE__FONT_SIZE", "42")

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["style"]["font_size"] == 42
    assert data["output_dir"] == "./output"


def test_doctor_exit_code(monkeypatch) -> None:
    import captionbatch.cli.main as cli_main

    monkeypatch.setattr(cli_main, "run_doctor", lambda _settings: 1)

    runner = CliRunner(mix_stderr=False)
    assert runner.invoke(app, ["doctor"]).exit_code == 1


def test_non_utf8_manifest_is_input_error(tmp_path: Path) -> None:
    manifest = tmp_path / "videos.csv"
    manifest.write_bytes(b"filename,START_TIME,END_TIME,TEXT\nclip.mp4,1,2,Caf\xe9\n")

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["csv", str(manifest), "--dry-run"])

    assert result.exit_code == 4
    assert "Input error: CSV file" in result.stderr
    assert "not valid UTF-8 at line 2" in result.stderr
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_single_accepts_report_and_skip_existing(tmp_path: Path, make_video) -> None:
    video = make_video("input.mp4")
    report = tmp_path / "single.json"

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(
        app,
        [
            "single",
            "--input",
            str(video),
            "--output-dir",
            str(tmp_path / "out"),
            "--dry-run",
            "--skip-existing",
            "--report",
            str(report),
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["mode"] == "single"
    assert payload["jobs"][0]["output_path"].endswith("testoutput.mp4")
