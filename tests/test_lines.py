from __future__ import annotations

from datetime import datetime, timezone

from poringmd.lines import (
    expand_indent,
    format_today,
    promote_heading,
    transform_line,
    transform_lines,
    vertical_space_block,
)


def test_format_today_uses_dhaka_calendar_day() -> None:
    # 20:00 UTC is already the next day in Asia/Dhaka (UTC+6).
    now = datetime(2026, 10, 17, 20, 0, tzinfo=timezone.utc)

    assert format_today(now) == "18 October 2026"
    assert format_today(now, timezone="UTC") == "17 October 2026"


def test_promote_heading_moves_hashes_to_front() -> None:
    assert promote_heading("..## Title") == "## .. Title"
    assert promote_heading("center[## Hi]") == "## center[ Hi]"
    assert promote_heading("plain # not a heading") == "plain # not a heading"


def test_expand_indent() -> None:
    assert expand_indent("...item") == "&nbsp;" * 6 + "item"
    assert expand_indent("no dots.") == "no dots."


def test_vertical_space_block() -> None:
    block = vertical_space_block("//3", 5)

    assert block == (
        '<div class="sync-target v-space" data-source-line="5">'
        + "&nbsp;<br/>" * 3
        + "</div>"
    )
    assert vertical_space_block("text //3", 5) is None
    assert vertical_space_block("//0", 1) == '<div class="sync-target v-space" data-source-line="1"></div>'


def test_transform_line_today_then_heading_then_indent() -> None:
    assert transform_line("..# [today]", 1, "1 May 2026") == "# &nbsp;&nbsp;&nbsp;&nbsp; 1 May 2026"


def test_transform_lines_keeps_line_count() -> None:
    source = "a\n[today]\n//2\n..b"
    out = transform_lines(source, "1 May 2026")

    assert out.count("\n") == source.count("\n")
    assert out.split("\n")[1] == "1 May 2026"
    assert 'data-source-line="3"' in out.split("\n")[2]
