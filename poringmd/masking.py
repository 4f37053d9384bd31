"""Line-count-preserving masks for literal regions (code and math)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# Applied in this order so that delimiters inside an already-masked region are
# never matched again by a later, looser pattern.
MASK_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("CODE_BLOCK", re.compile(r"(`{3,})([\s\S]*?)\1")),
    ("INLINE_CODE", re.compile(r"(`)([\s\S]*?)\1")),
    ("BLOCK_MATH", re.compile(r"(\$\$)([\s\S]*?)\1")),
    # `$5 and $6` must stay text: no whitespace right inside the dollars and
    # no newline in between.
    ("INLINE_MATH", re.compile(r"(\$)(?!\s)([^$\n]+?)(?<!\s)\1")),
)


@dataclass(frozen=True)
class Placeholder:
    key: str
    original_text: str
    padding: str

    @property
    def token(self) -> str:
        return self.key + self.padding


@dataclass
class MaskedDocument:
    """Masked text plus the placeholders needed to undo the masking."""

    text: str
    placeholders: list[Placeholder] = field(default_factory=list)

    def restore(self, text: str | None = None) -> str:
        """Put every masked region back, newest registration first."""
        restored = self.text if text is None else text
        for placeholder in reversed(self.placeholders):
            restored = restored.replace(placeholder.token, placeholder.original_text)
        return restored


def mask(text: str) -> MaskedDocument:
    """Hide code and math behind `@@KIND_n@@` keys padded with newlines."""
    placeholders: list[Placeholder] = []

    def substitute(kind: str, match: re.Match[str]) -> str:
        original = match.group(0)
        placeholder = Placeholder(
            key=f"@@{kind}_{len(placeholders)}@@",
            original_text=original,
            padding="\n" * original.count("\n"),
        )
        placeholders.append(placeholder)
        return placeholder.token

    masked = text
    for kind, pattern in MASK_PATTERNS:
        masked = pattern.sub(lambda match, k=kind: substitute(k, match), masked)
    return MaskedDocument(text=masked, placeholders=placeholders)
