"""Balanced `tag[...]` wrappers, parsed into a small span tree and rendered."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

COLOR_TAGS = ("red", "blue", "green", "orange", "purple", "gray")
ALIGN_TAGS = ("center", "right", "left")
WRAPPER_TAGS = COLOR_TAGS + ALIGN_TAGS

# No word boundary: `bored[x]` opens a `red` wrapper, same as in the editor.
WRAPPER_OPEN_RE = re.compile(r"(" + "|".join(WRAPPER_TAGS) + r")\[")


@dataclass
class WrapperSpan:
    tag: str
    children: list[Union[str, "WrapperSpan"]] = field(default_factory=list)

    def render(self) -> str:
        return f'<span class="{self.tag}">{render_nodes(self.children)}</span>'


Node = Union[str, WrapperSpan]


def find_closing_bracket(text: str, open_index: int) -> int | None:
    """Index of the `]` balancing `text[open_index]`, or None if input ends first."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return index
    return None


def parse_wrappers(text: str) -> list[Node]:
    """Split `text` into literal runs and balanced wrapper spans.

    An unbalanced opening stays literal (tag name and bracket) and scanning
    resumes right after its bracket, so inner wrappers can still match.
    """
    nodes: list[Node] = []
    literal_start = 0
    position = 0
    while True:
        match = WRAPPER_OPEN_RE.search(text, position)
        if match is None:
            break
        open_index = match.end() - 1
        close_index = find_closing_bracket(text, open_index)
        if close_index is None:
            position = match.end()
            continue
        if match.start() > literal_start:
            nodes.append(text[literal_start : match.start()])
        nodes.append(WrapperSpan(match.group(1), parse_wrappers(text[open_index + 1 : close_index])))
        literal_start = position = close_index + 1
    if literal_start < len(text):
        nodes.append(text[literal_start:])
    return nodes


def render_nodes(nodes: list[Node]) -> str:
    return "".join(node if isinstance(node, str) else node.render() for node in nodes)


def transform_wrappers(text: str) -> str:
    return render_nodes(parse_wrappers(text))
