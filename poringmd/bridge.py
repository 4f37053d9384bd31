"""Messages posted by the preview page's script, decoded for the window."""

from __future__ import annotations

import json
from collections.abc import Callable

from .pagination import PageGeometry
from .renderer import BRIDGE_PREFIX
from .sync import PreviewNode


def parse_bridge_message(message: str) -> dict | None:
    """Decode one console line; anything not meant for the bridge yields None."""
    if not message.startswith(BRIDGE_PREFIX):
        return None
    try:
        payload = json.loads(message[len(BRIDGE_PREFIX) :])
    except ValueError:
        return None
    return payload if isinstance(payload, dict) and isinstance(payload.get("type"), str) else None


def click_from_payload(payload: dict) -> tuple[PreviewNode | None, str]:
    path = payload.get("path")
    entries = [entry for entry in path if isinstance(entry, dict)] if isinstance(path, list) else []
    selection = payload.get("selection")
    return PreviewNode.from_path(entries), selection if isinstance(selection, str) else ""


def geometry_from_payload(payload: dict) -> PageGeometry | None:
    raw = payload.get("geometry")
    if not isinstance(raw, dict):
        return None
    try:
        breaks = tuple(float(value) for value in raw.get("breaks") or ())
        return PageGeometry(
            width=float(raw["width"]),
            content_height=float(raw["height"]),
            container_top=float(raw.get("top", 0.0)),
            manual_breaks=breaks,
        )
    except (KeyError, TypeError, ValueError):
        return None


class PreviewLayoutBridge:
    """Latest preview geometry plus fan-out of layout notifications.

    Serves the pagination engine both as its geometry source and as its
    resize/mutation subscription.
    """

    def __init__(self) -> None:
        self._geometry: PageGeometry | None = None
        self._callbacks: list[Callable[[], None]] = []

    def measure(self) -> PageGeometry | None:
        return self._geometry

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def reset(self) -> None:
        self._geometry = None

    def update(self, payload: dict) -> bool:
        """Store geometry from a `layout` message and notify subscribers."""
        geometry = geometry_from_payload(payload)
        if geometry is None:
            return False
        self._geometry = geometry
        for callback in list(self._callbacks):
            callback()
        return True
