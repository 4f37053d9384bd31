"""Keyword explanations: `:::explain` blocks, `[[kw]](...)` and `[[kw]]` links."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

BLOCK_EXPLAIN_RE = re.compile(r":::explain\s+(.+?)\n([\s\S]*?)\n:::")
INLINE_EXPLAIN_RE = re.compile(r"\[\[([^\]\n]+)\]\]\(")
REFERENCE_RE = re.compile(r"\[\[(.+?)\]\]")


@dataclass(frozen=True)
class Annotation:
    normalized: str
    keyword: str
    body: str


def normalize_keyword(keyword: str) -> str:
    """Anchor-safe form of a keyword: lowercase, `_` for spaces, `[a-z0-9_]` only."""
    collapsed = re.sub(r"\s+", "_", keyword.strip().lower())
    return re.sub(r"[^a-z0-9_]", "", collapsed)


def _register(
    annotations: dict[str, Annotation],
    keyword: str,
    body: str,
    restore: Callable[[str], str] | None = None,
) -> None:
    keyword = keyword.strip()
    normalized = normalize_keyword(keyword)
    if normalized in annotations:
        return
    # Masked regions go back in before trimming; trimming first eats the
    # newline padding a placeholder needs to be found again.
    if restore is not None:
        body = restore(body)
    annotations[normalized] = Annotation(normalized=normalized, keyword=keyword, body=body.strip())


def _find_closing_paren(text: str, open_index: int) -> int | None:
    """Return the index just past the `)` balancing `text[open_index]`."""
    depth = 1
    index = open_index + 1
    while index < len(text) and depth > 0:
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        index += 1
    return index if depth == 0 else None


def extract_annotations(
    text: str, restore: Callable[[str], str] | None = None
) -> tuple[str, dict[str, Annotation]]:
    """Pull explanations out of `text`, blanking them without losing lines.

    Block definitions are read first, so an inline definition of the same
    keyword later in the document never replaces a block one. When `text` is
    masked, `restore` turns each body back into the author's original text.
    """
    annotations: dict[str, Annotation] = {}

    def drop_block(match: re.Match[str]) -> str:
        _register(annotations, match.group(1), match.group(2), restore)
        return "\n" * match.group(0).count("\n")

    text = BLOCK_EXPLAIN_RE.sub(drop_block, text)

    position = 0
    while True:
        match = INLINE_EXPLAIN_RE.search(text, position)
        if match is None:
            break
        open_index = match.end() - 1
        close_end = _find_closing_paren(text, open_index)
        if close_end is None:
            position = match.end()
            continue
        keyword = match.group(1)
        content = text[open_index + 1 : close_end - 1]
        _register(annotations, keyword, content, restore)
        replacement = f"[[{keyword}]]" + "\n" * content.count("\n")
        text = text[: match.start()] + replacement + text[close_end:]
        position = match.start() + len(replacement)

    return text, annotations


def link_references(text: str, annotations: dict[str, Annotation]) -> str:
    """Turn `[[kw]]` into numbered origin anchors and append the explanations."""
    counters: dict[str, int] = {}

    def link(match: re.Match[str]) -> str:
        keyword = match.group(1).strip()
        normalized = normalize_keyword(keyword)
        counters[normalized] = counters.get(normalized, 0) + 1
        return (
            f'<span id="origin_{normalized}_{counters[normalized]}"></span>'
            f'<a href="#explain_{normalized}" class="keyword-ref">{keyword}</a>'
        )

    text = REFERENCE_RE.sub(link, text)
    if not annotations:
        return text
    return text + render_explanation_section(annotations)


def render_explanation_section(annotations: dict[str, Annotation]) -> str:
    # The thematic break renders as a manual page break, so explanations
    # always start on a fresh page.
    parts = ["\n\n---\n\n", '<div class="explanation-section">']
    for annotation in annotations.values():
        parts.append(f'\n<div id="explain_{annotation.normalized}" class="explanation">')
        parts.append(f"\n\n**{annotation.keyword}**\n\n{annotation.body}\n\n")
        parts.append(f'<a href="#origin_{annotation.normalized}_1" class="back-link">&larr; Back</a>')
        parts.append("\n</div>")
    parts.append("\n</div>")
    return "".join(parts)
