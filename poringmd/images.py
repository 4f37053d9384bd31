"""Image sources: asset-map lookups and stored blobs inlined as data URIs."""

from __future__ import annotations

import base64
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from .config import DEFAULT_IMAGE_WIDTH, IMAGE_KEY_PREFIX

INSERTED_IMAGE_WIDTH = 300
MIME_SUFFIXES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}


class ImageStore(Protocol):
    def load(self, key: str) -> bytes | None: ...


def new_image_key(now: datetime | None = None) -> str:
    """`poring_img_<epoch milliseconds>`, the key pasted images are stored under."""
    moment = now if now is not None else datetime.now(timezone.utc)
    return f"{IMAGE_KEY_PREFIX}{int(moment.timestamp() * 1000)}"


def image_markdown(key: str, width: int = INSERTED_IMAGE_WIDTH) -> str:
    """Reference inserted at the cursor after an image is stored."""
    return f"![Image | {width}]({key})"


class DirectoryImageStore:
    """Blobs saved as `<root>/<key>` or `<root>/<key>.<ext>`."""

    def __init__(self, root: Path):
        self.root = root

    def save(self, blob: bytes, now: datetime | None = None) -> str:
        """Write `blob` under a fresh key and return the key."""
        if not blob:
            raise ValueError("Empty image payload")
        self.root.mkdir(parents=True, exist_ok=True)
        suffix = MIME_SUFFIXES.get(sniff_image_mime(blob), "")
        key = new_image_key(now)
        # Two pastes inside one millisecond must not overwrite each other.
        stamp = int(key[len(IMAGE_KEY_PREFIX) :])
        while (self.root / key).exists() or any(self.root.glob(f"{key}.*")):
            stamp += 1
            key = f"{IMAGE_KEY_PREFIX}{stamp}"
        (self.root / f"{key}{suffix}").write_bytes(blob)
        return key

    def load(self, key: str) -> bytes | None:
        if not key or "/" in key or "\\" in key:
            return None
        exact = self.root / key
        if exact.is_file():
            return exact.read_bytes()
        for candidate in sorted(self.root.glob(f"{key}.*")):
            if candidate.is_file():
                return candidate.read_bytes()
        return None


def sniff_image_mime(blob: bytes) -> str:
    if blob.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if blob.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if blob[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if blob[:4] == b"RIFF" and blob[8:12] == b"WEBP":
        return "image/webp"
    if b"<svg" in blob[:512].lower():
        return "image/svg+xml"
    return "application/octet-stream"


class ImageResolver:
    def __init__(self, assets: Mapping[str, str] | None = None, store: ImageStore | None = None):
        self.assets = dict(assets or {})
        self.store = store

    def resolve(self, src: str) -> str:
        """Map a markdown image source to something the preview can load."""
        resolved = self.assets.get(src) or src
        if not resolved.startswith(IMAGE_KEY_PREFIX) or self.store is None:
            return resolved
        try:
            blob = self.store.load(resolved)
        except Exception as exc:
            print(f"poringmd: could not load image {resolved}: {exc}", file=sys.stderr)
            return resolved
        if not blob:
            return resolved
        encoded = base64.b64encode(blob).decode("ascii")
        return f"data:{sniff_image_mime(blob)};base64,{encoded}"


@dataclass(frozen=True)
class ImageSpec:
    alt: str
    width: int
    caption: str | None


def parse_image_alt(alt: str, default_width: int = DEFAULT_IMAGE_WIDTH) -> ImageSpec:
    """Split `alt|width|caption` image text; width falls back to the default."""
    parts = alt.split("|") if alt else ["Image"]
    width_text = parts[1].strip() if len(parts) > 1 else ""
    width = int(width_text) if width_text.isdigit() and int(width_text) > 0 else default_width
    caption = parts[2] if len(parts) > 2 and parts[2] else None
    return ImageSpec(alt=parts[0].strip(), width=width, caption=caption)
