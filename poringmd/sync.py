"""Click-to-source: map a clicked preview element back to its editor line."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from .source_tags import SOURCE_LINE_ATTR


class TextBuffer(Protocol):
    """The editable source buffer the preview is synchronised with."""

    def text(self) -> str: ...

    def set_selection(self, start: int, end: int) -> None: ...

    def focus(self) -> None: ...

    def viewport_height(self) -> float: ...

    def scroll_to(self, top: float, smooth: bool = True) -> None: ...


class MeasureClone(Protocol):
    def set_text(self, text: str) -> None: ...

    def marker_top(self) -> float: ...

    def discard(self) -> None: ...


class TextMetrics(Protocol):
    """Creates off-screen copies of a buffer with identical font and box metrics."""

    def create_clone(self, buffer: TextBuffer) -> MeasureClone: ...


@dataclass
class PreviewNode:
    """One element of the clicked element's ancestor chain."""

    attributes: Mapping[str, str | None] = field(default_factory=dict)
    parent: PreviewNode | None = None

    @classmethod
    def from_path(cls, path: list[Mapping[str, str | None]]) -> PreviewNode | None:
        """Build a node chain from innermost-first attribute dictionaries."""
        node: PreviewNode | None = None
        for attributes in reversed(path):
            node = cls(attributes=dict(attributes), parent=node)
        return node


def find_source_line(node: PreviewNode | None) -> int | None:
    """Line of the nearest tagged ancestor-or-self, or None when untagged."""
    while node is not None:
        value = node.attributes.get(SOURCE_LINE_ATTR)
        if value is not None:
            try:
                line = int(value)
            except (TypeError, ValueError):
                return None
            return line if line >= 1 else None
        node = node.parent
    return None


def line_bounds(text: str, line: int) -> tuple[int, int]:
    """Character range `[start, end)` of 1-based `line`, clamped to the last line."""
    start = 0
    current = 1
    while current < line and start < len(text):
        newline = text.find("\n", start)
        if newline == -1:
            break
        start = newline + 1
        current += 1
    end = text.find("\n", start)
    return start, len(text) if end == -1 else end


def measure_offset_top(metrics: TextMetrics, buffer: TextBuffer, offset: int) -> float:
    """Pixel top of character `offset` as laid out by the buffer's metrics."""
    clone = metrics.create_clone(buffer)
    try:
        clone.set_text(buffer.text()[:offset])
        return clone.marker_top()
    finally:
        clone.discard()


def centered_scroll_top(pixel_top: float, viewport_height: float) -> float:
    return max(0.0, pixel_top - viewport_height / 2)


class ClickToSourceResolver:
    def __init__(self, buffer: TextBuffer, metrics: TextMetrics):
        self.buffer = buffer
        self.metrics = metrics

    def handle_click(self, node: PreviewNode | None, selection_text: str = "") -> tuple[int, int] | None:
        """Select and reveal the source line behind a clicked preview element.

        Returns the selected character range, or None when the click was
        ignored (active text selection, or nothing tagged under the pointer).
        """
        if selection_text:
            return None
        line = find_source_line(node)
        if line is None:
            return None

        start, end = line_bounds(self.buffer.text(), line)
        self.buffer.focus()
        self.buffer.set_selection(start, end)

        try:
            pixel_top = measure_offset_top(self.metrics, self.buffer, start)
            self.buffer.scroll_to(centered_scroll_top(pixel_top, self.buffer.viewport_height()), smooth=True)
        except Exception as exc:
            # Geometry is best effort; the selection has already moved.
            print(f"poringmd: could not scroll editor to line {line}: {exc}", file=sys.stderr)
        return start, end
