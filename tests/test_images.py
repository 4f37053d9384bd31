from __future__ import annotations

import base64
from datetime import datetime, timezone
from pathlib import Path

import pytest

from poringmd.config import PoringConfig
from poringmd.images import (
    DirectoryImageStore,
    ImageResolver,
    ImageSpec,
    image_markdown,
    new_image_key,
    parse_image_alt,
    sniff_image_mime,
)
from poringmd.renderer import PoringRenderer

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class _BrokenStore:
    def load(self, key: str) -> bytes | None:
        raise OSError("disk gone")


def test_parse_image_alt() -> None:
    assert parse_image_alt("Cat|250|A cat") == ImageSpec(alt="Cat", width=250, caption="A cat")
    assert parse_image_alt("Cat|wide") == ImageSpec(alt="Cat", width=400, caption=None)
    assert parse_image_alt("Cat||") == ImageSpec(alt="Cat", width=400, caption=None)
    assert parse_image_alt("", default_width=320) == ImageSpec(alt="Image", width=320, caption=None)


def test_asset_map_is_consulted_first() -> None:
    resolver = ImageResolver({"logo": "https://cdn.example.com/logo.png"})

    assert resolver.resolve("logo") == "https://cdn.example.com/logo.png"
    assert resolver.resolve("other.png") == "other.png"


def test_stored_blob_becomes_data_uri(tmp_path: Path) -> None:
    (tmp_path / "poring_img_1.png").write_bytes(PNG_BYTES)
    resolver = ImageResolver(store=DirectoryImageStore(tmp_path))

    expected = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
    assert resolver.resolve("poring_img_1") == expected
    assert resolver.resolve("poring_img_missing") == "poring_img_missing"


def test_directory_store_rejects_paths(tmp_path: Path) -> None:
    store = DirectoryImageStore(tmp_path)

    assert store.load("../poring_img_1") is None
    assert store.load("") is None


def test_store_failure_falls_back_to_key() -> None:
    resolver = ImageResolver(store=_BrokenStore())

    assert resolver.resolve("poring_img_7") == "poring_img_7"


def test_sniff_image_mime() -> None:
    assert sniff_image_mime(PNG_BYTES) == "image/png"
    assert sniff_image_mime(b"\xff\xd8\xff\xe0rest") == "image/jpeg"
    assert sniff_image_mime(b"<svg xmlns='http://www.w3.org/2000/svg'/>") == "image/svg+xml"
    assert sniff_image_mime(b"????") == "application/octet-stream"


def test_renderer_inlines_stored_images(tmp_path: Path) -> None:
    (tmp_path / "poring_img_2.png").write_bytes(PNG_BYTES)
    renderer = PoringRenderer(PoringConfig(image_dir=tmp_path, default_image_width=300))
    body = renderer.render_body("![Chart](poring_img_2)")

    assert 'src="data:image/png;base64,' in body
    assert "width: 300px" in body


def test_new_image_key_uses_epoch_milliseconds() -> None:
    assert new_image_key(datetime(2026, 1, 1, tzinfo=timezone.utc)) == "poring_img_1767225600000"
    assert new_image_key().startswith("poring_img_")


def test_store_save_writes_blob_under_fresh_key(tmp_path: Path) -> None:
    root = tmp_path / "images"
    store = DirectoryImageStore(root)
    moment = datetime(2026, 1, 1, tzinfo=timezone.utc)

    first = store.save(PNG_BYTES, now=moment)
    second = store.save(b"\xff\xd8\xff\xe0jpeg", now=moment)

    assert first == "poring_img_1767225600000"
    assert second == "poring_img_1767225600001"
    assert (root / f"{first}.png").read_bytes() == PNG_BYTES
    assert (root / f"{second}.jpg").is_file()
    assert store.load(first) == PNG_BYTES


def test_store_save_rejects_empty_payload(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        DirectoryImageStore(tmp_path).save(b"")


def test_inserted_image_reference_renders_stored_blob(tmp_path: Path) -> None:
    key = DirectoryImageStore(tmp_path).save(PNG_BYTES)
    reference = image_markdown(key)

    assert reference == f"![Image | 300]({key})"
    assert parse_image_alt("Image | 300") == ImageSpec(alt="Image", width=300, caption=None)
    body = PoringRenderer(PoringConfig(image_dir=tmp_path)).render_body(reference)
    assert 'src="data:image/png;base64,' in body
    assert "width: 300px" in body
