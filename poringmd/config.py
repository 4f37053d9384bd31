"""User configuration: `~/.poringmd.cfg` plus environment overrides."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .lines import DEFAULT_TIMEZONE

CONFIG_FILE_NAME = ".poringmd.cfg"
DEFAULT_IMAGE_WIDTH = 400
IMAGE_KEY_PREFIX = "poring_img_"
IMAGE_DIR_NAME = ".poringmd-images"

# Short names the bundled cover templates use for their artwork. The files are
# looked up next to the note, so a note folder can carry its own logos.
DEFAULT_ASSETS = {
    "SUST_LOGO": "sust_logo.png",
    "BEGULA_IMG": "Begula.png",
}


@dataclass
class PoringConfig:
    timezone: str = DEFAULT_TIMEZONE
    image_dir: Path | None = None
    assets: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ASSETS))
    default_image_width: int = DEFAULT_IMAGE_WIDTH
    mathjax_script: Path | None = None
    cover_templates: dict[str, str] = field(default_factory=dict)


def config_file_path() -> Path:
    return Path.home() / CONFIG_FILE_NAME


def default_image_dir() -> Path:
    return Path.home() / IMAGE_DIR_NAME


def _read_config_payload(cfg_path: Path) -> dict:
    try:
        if not cfg_path.exists():
            return {}
        raw = cfg_path.read_text(encoding="utf-8").strip()
        if not raw:
            return {}
        payload = json.loads(raw)
    except Exception:
        # Any read/parse/access issue should fall back to defaults.
        return {}
    return payload if isinstance(payload, dict) else {}


def _is_known_timezone(name: str) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        print(f"poringmd: unknown timezone {name!r}, ignoring it", file=sys.stderr)
        return False
    return True


def load_config(cfg_path: Path | None = None, environ: dict[str, str] | None = None) -> PoringConfig:
    """Build the effective configuration from the config file and environment."""
    payload = _read_config_payload(cfg_path if cfg_path is not None else config_file_path())
    env = os.environ if environ is None else environ
    config = PoringConfig()

    for timezone in (env.get("PORINGMD_TIMEZONE", ""), payload.get("timezone")):
        if isinstance(timezone, str) and _is_known_timezone(timezone.strip()):
            config.timezone = timezone.strip()
            break

    image_dir = env.get("PORINGMD_IMAGE_DIR", "").strip() or payload.get("image_dir")
    if isinstance(image_dir, str) and image_dir.strip():
        config.image_dir = Path(image_dir.strip()).expanduser()
    else:
        config.image_dir = default_image_dir()

    assets = payload.get("assets")
    if isinstance(assets, dict):
        config.assets.update({str(key): str(value) for key, value in assets.items()})

    templates = payload.get("cover_templates")
    if isinstance(templates, dict):
        config.cover_templates = {
            str(name): content for name, content in templates.items() if isinstance(content, str) and content
        }

    width = payload.get("default_image_width")
    if isinstance(width, int) and width > 0:
        config.default_image_width = width

    mathjax = env.get("PORINGMD_MATHJAX_JS", "").strip()
    if mathjax:
        config.mathjax_script = Path(mathjax).expanduser()
    return config
