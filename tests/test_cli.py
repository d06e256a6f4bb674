"""Tests for the click command-line front-end."""

from pathlib import Path

from click.testing import CliRunner

from scjingle import __version__
from scjingle.cli import main


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_info_lists_parts(two_voice_score_path: Path) -> None:
    result = CliRunner().invoke(main, ["info", str(two_voice_score_path)])
    assert result.exit_code == 0, result.output
    assert "Parts     : 2" in result.output
    assert "max chord 2" in result.output


def test_commands_prints_wire_text(simple_score_path: Path) -> None:
    result = CliRunner().invoke(main, ["commands", str(simple_score_path), "--jingle", "3"])
    assert result.exit_code == 0, result.output
    assert "jingle add 2 2\n" in result.output
    assert "jingle note 3 right 1 128 261 600\n" in result.output


def test_commands_with_window_and_octave(simple_score_path: Path) -> None:
    result = CliRunner().invoke(
        main,
        ["commands", str(simple_score_path), "--start", "1", "--end", "2", "--left-octave", "2"],
    )
    assert result.exit_code == 0, result.output
    assert "jingle add 1 1\n" in result.output
    assert "jingle note 0 left 0 128 523 600\n" in result.output


def test_commands_rejects_bad_range(simple_score_path: Path) -> None:
    result = CliRunner().invoke(main, ["commands", str(simple_score_path), "--end", "9"])
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_commands_rejects_oversized_selection(simple_score_path: Path) -> None:
    result = CliRunner().invoke(main, ["commands", str(simple_score_path), "--capacity", "8"])
    assert result.exit_code == 1
    assert "8" in result.output


def test_info_reports_parse_failure(tmp_path: Path) -> None:
    path = tmp_path / "bad.musicxml"
    path.write_text(
        "<score-partwise><part><measure><note><chord/><duration>1</duration></note>"
        "</measure></part></score-partwise>",
        encoding="utf-8",
    )
    result = CliRunner().invoke(main, ["info", str(path)])
    assert result.exit_code == 1
    assert "Could not parse score" in result.output


def test_preview_writes_midi(simple_score_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "out.mid"
    result = CliRunner().invoke(main, ["preview", str(simple_score_path), "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes().startswith(b"MThd")


def test_preview_has_no_jingle_option(simple_score_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "out.mid"
    result = CliRunner().invoke(
        main, ["preview", str(simple_score_path), "-o", str(out), "--jingle", "2"]
    )
    assert result.exit_code == 2
    assert "--jingle" in result.output
    assert not out.exists()


def test_upload_without_acknowledgement_aborts(simple_score_path: Path) -> None:
    result = CliRunner().invoke(
        main,
        ["upload", str(simple_score_path), "--port", "loop://", "--timeout", "0.05"],
    )
    assert result.exit_code == 1
    assert "partially written" in result.output


def test_upload_port_from_environment(simple_score_path: Path) -> None:
    result = CliRunner().invoke(
        main,
        ["upload", str(simple_score_path), "--timeout", "0.05"],
        env={"SCJINGLE_PORT": "loop://"},
    )
    assert result.exit_code == 1
    assert "loop://" in result.output
