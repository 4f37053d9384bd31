from __future__ import annotations

import json
from pathlib import Path

import pytest

from poringmd.config import DEFAULT_ASSETS, DEFAULT_IMAGE_WIDTH, IMAGE_DIR_NAME, load_config
from poringmd.lines import DEFAULT_TIMEZONE


@pytest.fixture(autouse=True)
def _home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.cfg", environ={})

    assert config.timezone == DEFAULT_TIMEZONE
    assert config.image_dir == tmp_path / IMAGE_DIR_NAME
    assert config.assets == DEFAULT_ASSETS
    assert config.default_image_width == DEFAULT_IMAGE_WIDTH
    assert config.mathjax_script is None
    assert config.cover_templates == {}


def test_file_values_are_read(tmp_path: Path) -> None:
    cfg = tmp_path / "poring.cfg"
    cfg.write_text(
        json.dumps(
            {
                "timezone": "Europe/London",
                "image_dir": str(tmp_path / "images"),
                "assets": {"logo": "https://cdn.example.com/logo.png"},
                "default_image_width": 320,
            }
        ),
        encoding="utf-8",
    )
    config = load_config(cfg, environ={})

    assert config.timezone == "Europe/London"
    assert config.image_dir == tmp_path / "images"
    assert config.assets == {**DEFAULT_ASSETS, "logo": "https://cdn.example.com/logo.png"}
    assert config.default_image_width == 320


def test_file_assets_override_bundled_names(tmp_path: Path) -> None:
    cfg = tmp_path / "poring.cfg"
    cfg.write_text(json.dumps({"assets": {"SUST_LOGO": "/srv/logos/sust.svg"}}), encoding="utf-8")

    assert load_config(cfg, environ={}).assets["SUST_LOGO"] == "/srv/logos/sust.svg"


def test_environment_overrides_file(tmp_path: Path) -> None:
    cfg = tmp_path / "poring.cfg"
    cfg.write_text(json.dumps({"timezone": "Europe/London"}), encoding="utf-8")
    environ = {
        "PORINGMD_TIMEZONE": "UTC",
        "PORINGMD_IMAGE_DIR": str(tmp_path),
        "PORINGMD_MATHJAX_JS": str(tmp_path / "tex-svg.js"),
    }
    config = load_config(cfg, environ=environ)

    assert config.timezone == "UTC"
    assert config.image_dir == tmp_path
    assert config.mathjax_script == tmp_path / "tex-svg.js"


def test_unknown_timezones_fall_back_to_default(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cfg = tmp_path / "poring.cfg"
    cfg.write_text(json.dumps({"timezone": "Mars/Olympus_Mons"}), encoding="utf-8")

    assert load_config(cfg, environ={}).timezone == DEFAULT_TIMEZONE
    assert load_config(cfg, environ={"PORINGMD_TIMEZONE": "Not/AZone"}).timezone == DEFAULT_TIMEZONE
    assert "Mars/Olympus_Mons" in capsys.readouterr().err


def test_unknown_environment_timezone_defers_to_file(tmp_path: Path) -> None:
    cfg = tmp_path / "poring.cfg"
    cfg.write_text(json.dumps({"timezone": "Europe/London"}), encoding="utf-8")

    config = load_config(cfg, environ={"PORINGMD_TIMEZONE": "Not/AZone"})

    assert config.timezone == "Europe/London"


def test_cover_templates_are_read(tmp_path: Path) -> None:
    cfg = tmp_path / "poring.cfg"
    cfg.write_text(
        json.dumps({"cover_templates": {"lab": "center[#Lab]\n---\n", "empty": "", "bad": 3}}),
        encoding="utf-8",
    )

    assert load_config(cfg, environ={}).cover_templates == {"lab": "center[#Lab]\n---\n"}


def test_bad_payloads_fall_back_to_defaults(tmp_path: Path) -> None:
    cfg = tmp_path / "poring.cfg"
    for raw in ("{not json", "[1, 2]", "", json.dumps({"default_image_width": -5, "assets": "nope", "timezone": 7})):
        cfg.write_text(raw, encoding="utf-8")
        config = load_config(cfg, environ={})
        assert config.timezone == DEFAULT_TIMEZONE
        assert config.default_image_width == DEFAULT_IMAGE_WIDTH
        assert config.assets == DEFAULT_ASSETS
