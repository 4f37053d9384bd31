"""The Poring dialect pass: custom notation in, renderer-ready markdown out."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .annotations import Annotation, extract_annotations, link_references
from .decorations import transform_decorations
from .lines import DEFAULT_TIMEZONE, format_today, transform_lines
from .masking import mask
from .wrappers import transform_wrappers


@dataclass
class PreprocessResult:
    markdown: str
    annotations: dict[str, Annotation] = field(default_factory=dict)


def preprocess_document(
    source: str,
    *,
    today: str | None = None,
    now: datetime | None = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> PreprocessResult:
    """Run every dialect stage over one immutable snapshot of `source`.

    Up to the reference linker the text keeps the source's line count, so
    markdown-it line maps still point at editor lines. The explanation section
    appended by the linker is the only growth.
    """
    if today is None:
        today = format_today(now, timezone)
    masked = mask(source)
    text, annotations = extract_annotations(masked.text, masked.restore)
    text = transform_lines(text, today)
    text = transform_wrappers(text)
    text = transform_decorations(text)
    text = link_references(text, annotations)
    return PreprocessResult(markdown=masked.restore(text), annotations=annotations)


def preprocess(
    source: str,
    *,
    today: str | None = None,
    now: datetime | None = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> str:
    return preprocess_document(source, today=today, now=now, timezone=timezone).markdown
