from __future__ import annotations

from poringmd.bridge import PreviewLayoutBridge
from poringmd.pagination import PageGeometry, PageGuide, PageSpec, PaginationGuideEngine, compute_page_guides


def _positions(guides: list[PageGuide]) -> list[float]:
    return [guide.position for guide in guides]


def test_automatic_pages_at_one_px_per_mm() -> None:
    # 20px top padding, 257px per page, 5px tolerance.
    guides = compute_page_guides(PageGeometry(width=210, content_height=600))

    assert guides == [PageGuide(277.0, 1), PageGuide(534.0, 2)]


def test_content_shorter_than_one_page_has_no_guides() -> None:
    assert compute_page_guides(PageGeometry(width=210, content_height=280)) == []
    assert compute_page_guides(PageGeometry(width=0, content_height=5000)) == []


def test_tolerance_suppresses_guide_at_the_very_end() -> None:
    assert compute_page_guides(PageGeometry(width=210, content_height=282)) == []
    assert _positions(compute_page_guides(PageGeometry(width=210, content_height=283))) == [277.0]


def test_guides_scale_with_container_width() -> None:
    guides = compute_page_guides(PageGeometry(width=420, content_height=1200))

    assert _positions(guides) == [554.0, 1068.0]


def test_manual_break_cuts_the_page_short() -> None:
    guides = compute_page_guides(PageGeometry(width=210, content_height=600, manual_breaks=(100.0,)))

    assert guides == [PageGuide(100.0, 1), PageGuide(357.0, 2)]


def test_manual_breaks_are_sorted_and_offset_by_container_top() -> None:
    geometry = PageGeometry(width=210, content_height=600, container_top=50.0, manual_breaks=(300.0, 100.0))

    assert _positions(compute_page_guides(geometry)) == [150.0, 350.0, 607.0]


def test_break_beyond_the_page_is_not_used_early() -> None:
    guides = compute_page_guides(PageGeometry(width=210, content_height=600, manual_breaks=(400.0,)))

    assert _positions(guides) == [277.0, 400.0]


def test_custom_page_spec() -> None:
    page_spec = PageSpec(reference_width_mm=100.0, content_height_mm=100.0, top_padding_mm=0.0, tolerance_px=0.0)

    assert _positions(compute_page_guides(PageGeometry(width=100, content_height=250), page_spec)) == [100.0, 200.0]


class FakeSource:
    def __init__(self, geometry: PageGeometry | None):
        self.geometry = geometry

    def measure(self) -> PageGeometry | None:
        return self.geometry


class FakeSubscription:
    def __init__(self) -> None:
        self.callbacks: list = []

    def subscribe(self, callback):
        self.callbacks.append(callback)
        return lambda: self.callbacks.remove(callback)


def test_engine_lifecycle() -> None:
    source = FakeSource(PageGeometry(width=210, content_height=600))
    subscription = FakeSubscription()
    published: list[list[PageGuide]] = []
    engine = PaginationGuideEngine(source, subscription, published.append)

    engine.mount()
    assert len(subscription.callbacks) == 1
    assert _positions(published[-1]) == [277.0, 534.0]

    source.geometry = PageGeometry(width=210, content_height=300)
    subscription.callbacks[0]()
    assert _positions(published[-1]) == [277.0]

    engine.unmount()
    assert subscription.callbacks == []


def test_engine_keeps_guides_when_geometry_is_unavailable() -> None:
    source = FakeSource(PageGeometry(width=210, content_height=600))
    engine = PaginationGuideEngine(source)
    engine.recompute()

    source.geometry = None
    assert _positions(engine.recompute()) == [277.0, 534.0]


def test_engine_follows_layout_bridge() -> None:
    bridge = PreviewLayoutBridge()
    published: list[list[PageGuide]] = []
    engine = PaginationGuideEngine(bridge, bridge, published.append)
    engine.mount()
    assert published == []

    bridge.update({"type": "layout", "geometry": {"width": 210, "height": 600, "top": 10, "breaks": []}})
    assert _positions(published[-1]) == [287.0, 544.0]

    engine.unmount()
    bridge.update({"type": "layout", "geometry": {"width": 210, "height": 900, "top": 0, "breaks": []}})
    assert len(published) == 1
