"""`++underline++` and `==highlight==` / `color==highlight==` decorations."""

from __future__ import annotations

import re

from .wrappers import COLOR_TAGS

UNDERLINE_RE = re.compile(r"\+\+([\s\S]*?)\+\+")
COLORED_HIGHLIGHT_RES = tuple(
    (color, re.compile(re.escape(color) + r"==([\s\S]*?)==")) for color in COLOR_TAGS
)
HIGHLIGHT_RE = re.compile(r"==([\s\S]*?)==")


def transform_decorations(text: str) -> str:
    # Must run after wrapper expansion: brackets inside a decoration would
    # otherwise skew the wrapper depth count.
    text = UNDERLINE_RE.sub(r'<span class="underline">\1</span>', text)
    for color, pattern in COLORED_HIGHLIGHT_RES:
        text = pattern.sub(rf'<mark class="bg-{color}">\1</mark>', text)
    return HIGHLIGHT_RE.sub(r"<mark>\1</mark>", text)
