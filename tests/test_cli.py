from __future__ import annotations

from pathlib import Path

from poringmd.cli import main


def test_html_export(tmp_path: Path) -> None:
    note = tmp_path / "note.md"
    note.write_text("# Hello\n\nred[world]\n", encoding="utf-8")
    out = tmp_path / "note.html"

    code = main([str(note), "--html", str(out), "--config", str(tmp_path / "none.cfg")])

    assert code == 0
    page = out.read_text(encoding="utf-8")
    assert page.startswith("<!doctype html>")
    assert "<title>note.md</title>" in page
    assert '<span class="sync-target red" data-source-line="3">world</span>' in page


def test_missing_note_is_an_error(tmp_path: Path, capsys) -> None:
    code = main([str(tmp_path / "nope.md"), "--html", str(tmp_path / "out.html")])

    assert code == 2
    assert "Path is not a file" in capsys.readouterr().err


def test_html_export_needs_a_note(tmp_path: Path, capsys) -> None:
    code = main(["--html", str(tmp_path / "out.html"), "--config", str(tmp_path / "none.cfg")])

    assert code == 2
    assert "--html needs a note" in capsys.readouterr().err


def test_unknown_timezone_in_config_still_renders(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.delenv("PORINGMD_TIMEZONE", raising=False)
    cfg = tmp_path / "poring.cfg"
    cfg.write_text('{"timezone": "Mars/Phobos"}', encoding="utf-8")
    note = tmp_path / "note.md"
    note.write_text("hello [today]\n", encoding="utf-8")
    out = tmp_path / "note.html"

    code = main([str(note), "--html", str(out), "--config", str(cfg)])

    assert code == 0
    assert "[today]" not in out.read_text(encoding="utf-8")
    assert "Mars/Phobos" in capsys.readouterr().err
