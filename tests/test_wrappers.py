from __future__ import annotations

from poringmd.decorations import transform_decorations
from poringmd.wrappers import WrapperSpan, parse_wrappers, transform_wrappers


def test_unbalanced_wrapper_is_literal() -> None:
    assert transform_wrappers("red[abc") == "red[abc"


def test_nested_wrappers() -> None:
    assert transform_wrappers("red[a blue[b] c]") == (
        '<span class="red">a <span class="blue">b</span> c</span>'
    )


def test_inner_wrapper_survives_unbalanced_outer() -> None:
    assert transform_wrappers("red[x blue[y]") == 'red[x <span class="blue">y</span>'


def test_markdown_links_are_untouched() -> None:
    assert transform_wrappers("red[a] and [link](x)") == '<span class="red">a</span> and [link](x)'


def test_transform_is_idempotent() -> None:
    once = transform_wrappers("center[green[ok]] red[[x]]")

    assert transform_wrappers(once) == once


def test_parse_tree_shape() -> None:
    nodes = parse_wrappers("pre gray[in] post")

    assert nodes == ["pre ", WrapperSpan("gray", ["in"]), " post"]


def test_decorations() -> None:
    assert transform_decorations("++u++") == '<span class="underline">u</span>'
    assert transform_decorations("red==hot==") == '<mark class="bg-red">hot</mark>'
    assert transform_decorations("==plain==") == "<mark>plain</mark>"
    assert transform_decorations("a == b") == "a == b"
