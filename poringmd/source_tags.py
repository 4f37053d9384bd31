"""markdown-it plugin that maps rendered elements back to editor lines.

Tagged elements carry `data-source-line` (1-based) plus the `sync-target`
class; the preview uses them to jump the editor to the originating line.
Tables are deliberately left alone because extra attributes on table parts
break their layout in the print path.
"""

from __future__ import annotations

import re

from markdown_it import MarkdownIt

SOURCE_LINE_ATTR = "data-source-line"
SYNC_CLASS = "sync-target"

TAGGED_OPEN_TYPES = {"paragraph_open", "heading_open", "blockquote_open", "list_item_open", "code_block"}
TAGGED_HEADINGS = {"h1", "h2", "h3", "h4"}

HTML_OPEN_TAG_RE = re.compile(r"<(span|div|mark)\b([^>]*)>", re.IGNORECASE)
CLASS_ATTR_RE = re.compile(r"""\bclass\s*=\s*(["'])(.*?)\1""", re.IGNORECASE | re.DOTALL)


def _tag_open_tag(match: re.Match[str], line: int) -> str:
    name, attrs = match.group(1), match.group(2)
    if SOURCE_LINE_ATTR in attrs.lower():
        return match.group(0)
    self_closing = attrs.rstrip().endswith("/")
    if self_closing:
        attrs = attrs.rstrip()[:-1]
    if CLASS_ATTR_RE.search(attrs):
        attrs = CLASS_ATTR_RE.sub(
            lambda m: f"class={m.group(1)}{SYNC_CLASS} {m.group(2)}{m.group(1)}",
            attrs,
            count=1,
        )
    else:
        attrs += f' class="{SYNC_CLASS}"'
    attrs += f' {SOURCE_LINE_ATTR}="{line}"'
    return f"<{name}{attrs}{' /' if self_closing else ''}>"


def tag_html_fragment(fragment: str, first_line: int) -> str:
    """Tag every `span`/`div`/`mark` opening tag with the line it starts on."""
    return HTML_OPEN_TAG_RE.sub(
        lambda m: _tag_open_tag(m, first_line + fragment.count("\n", 0, m.start())),
        fragment,
    )


def is_image_paragraph(tokens, idx: int) -> bool:
    """True when the paragraph opening at `idx` holds exactly one image."""
    if idx + 1 >= len(tokens):
        return False
    inline = tokens[idx + 1]
    children = inline.children or []
    return inline.type == "inline" and len(children) == 1 and children[0].type == "image"


def _assign_source_lines(state) -> None:
    for token in state.tokens:
        if token.map is None:
            continue
        first_line = token.map[0] + 1
        if token.type in TAGGED_OPEN_TYPES:
            if token.type == "heading_open" and token.tag not in TAGGED_HEADINGS:
                continue
            token.attrSet(SOURCE_LINE_ATTR, str(first_line))
            token.attrJoin("class", SYNC_CLASS)
        elif token.type in ("html_block", "fence", "math_block", "math_block_label"):
            token.meta["source_line"] = first_line
        elif token.type == "inline" and token.children:
            line = first_line
            for child in token.children:
                if child.type in ("softbreak", "hardbreak"):
                    line += 1
                elif child.type == "html_inline":
                    child.meta["source_line"] = line
                    line += child.content.count("\n")


def source_tag_plugin(md: MarkdownIt) -> None:
    """Tag block elements and dialect HTML with their originating source line."""
    md.core.ruler.push("source_lines", _assign_source_lines)
    default_fence = md.renderer.rules["fence"]

    def render_fence(self, tokens, idx, options, env):
        rendered = default_fence(tokens, idx, options, env)
        line = tokens[idx].meta.get("source_line")
        if line is None or not rendered.startswith("<pre>"):
            return rendered
        return f'<pre class="{SYNC_CLASS}" {SOURCE_LINE_ATTR}="{line}">' + rendered[len("<pre>") :]

    def render_html_inline(self, tokens, idx, options, env):
        token = tokens[idx]
        line = token.meta.get("source_line")
        return token.content if line is None else tag_html_fragment(token.content, line)

    def render_html_block(self, tokens, idx, options, env):
        token = tokens[idx]
        line = token.meta.get("source_line")
        return token.content if line is None else tag_html_fragment(token.content, line)

    def render_paragraph_open(self, tokens, idx, options, env):
        token = tokens[idx]
        if token.hidden or not is_image_paragraph(tokens, idx):
            return self.renderToken(tokens, idx, options, env)
        line = token.attrGet(SOURCE_LINE_ATTR)
        line_attr = f' {SOURCE_LINE_ATTR}="{line}"' if line is not None else ""
        return f'<div class="image-paragraph {SYNC_CLASS}"{line_attr}>'

    def render_paragraph_close(self, tokens, idx, options, env):
        token = tokens[idx]
        # Paragraph tokens are open, inline, close; the opener sits two back.
        if not token.hidden and idx >= 2 and is_image_paragraph(tokens, idx - 2):
            return "</div>\n"
        return self.renderToken(tokens, idx, options, env)

    def render_hr(self, tokens, idx, options, env):
        # Thematic breaks are author-placed page breaks, not rules.
        return '<div class="manual-page-break"></div>\n'

    def render_link_open(self, tokens, idx, options, env):
        token = tokens[idx]
        href = str(token.attrGet("href") or "")
        if not href.startswith("#"):
            token.attrJoin("class", "styled-link")
            token.attrSet("target", "_blank")
            token.attrSet("rel", "noopener noreferrer")
        return self.renderToken(tokens, idx, options, env)

    md.add_render_rule("fence", render_fence)
    md.add_render_rule("html_inline", render_html_inline)
    md.add_render_rule("html_block", render_html_block)
    md.add_render_rule("paragraph_open", render_paragraph_open)
    md.add_render_rule("paragraph_close", render_paragraph_close)
    md.add_render_rule("hr", render_hr)
    md.add_render_rule("link_open", render_link_open)
