"""A4 page-guide simulation over the rendered preview's geometry.

Guides only preview where pages will end; printing itself relies on the
engine's native pagination with matching page size and margins.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class PageSpec:
    reference_width_mm: float = 210.0
    content_height_mm: float = 257.0
    top_padding_mm: float = 20.0
    tolerance_px: float = 5.0


@dataclass(frozen=True)
class PageGeometry:
    """Snapshot of the page container, all values in CSS pixels.

    `manual_breaks` and `content_height` are relative to the container top;
    `container_top` is the container's offset inside the guide overlay.
    """

    width: float
    content_height: float
    container_top: float = 0.0
    manual_breaks: Sequence[float] = field(default_factory=tuple)


@dataclass(frozen=True)
class PageGuide:
    position: float
    page_number: int


def compute_page_guides(geometry: PageGeometry, page_spec: PageSpec = PageSpec()) -> list[PageGuide]:
    """Walk the content page by page, letting manual breaks cut pages short."""
    if geometry.width <= 0:
        return []
    px_per_mm = geometry.width / page_spec.reference_width_mm
    page_height = page_spec.content_height_mm * px_per_mm
    breaks = sorted(geometry.manual_breaks)

    guides: list[PageGuide] = []
    anchor = page_spec.top_padding_mm * px_per_mm
    page_number = 1
    while anchor + page_height + page_spec.tolerance_px < geometry.content_height:
        next_auto = anchor + page_height
        position = next((pos for pos in breaks if anchor < pos <= next_auto), next_auto)
        guides.append(PageGuide(position=geometry.container_top + position, page_number=page_number))
        page_number += 1
        anchor = position
    return guides


class GeometrySource(Protocol):
    def measure(self) -> PageGeometry | None: ...


class LayoutSubscription(Protocol):
    """Resize/mutation notifications for the observed preview container."""

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]: ...


class PaginationGuideEngine:
    def __init__(
        self,
        source: GeometrySource,
        subscription: LayoutSubscription | None = None,
        on_guides: Callable[[list[PageGuide]], None] | None = None,
        page_spec: PageSpec = PageSpec(),
    ):
        self.source = source
        self.subscription = subscription
        self.on_guides = on_guides
        self.page_spec = page_spec
        self.guides: list[PageGuide] = []
        self._unsubscribe: Callable[[], None] | None = None

    def mount(self) -> None:
        if self.subscription is not None and self._unsubscribe is None:
            self._unsubscribe = self.subscription.subscribe(self.recompute)
        self.recompute()

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def recompute(self) -> list[PageGuide]:
        geometry = self.source.measure()
        if geometry is None:
            return self.guides
        self.guides = compute_page_guides(geometry, self.page_spec)
        if self.on_guides is not None:
            self.on_guides(self.guides)
        return self.guides
