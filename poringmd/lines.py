"""Per-line rewrites: `[today]`, heading promotion, dot indentation, `//N` spacing."""

from __future__ import annotations

import re
from datetime import datetime
from zoneinfo import ZoneInfo

from .wrappers import WRAPPER_TAGS

TODAY_TOKEN = "[today]"
DEFAULT_TIMEZONE = "Asia/Dhaka"
NBSP = "&nbsp;"

# en-GB long month names; kept literal so output never follows the process locale.
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

HEADING_RE = re.compile(r"^([\s.]*(?:(?:" + "|".join(WRAPPER_TAGS) + r")\[\s*)*)(#+)")
INDENT_RE = re.compile(r"^([#\s]*?)(\.+)")
VERTICAL_SPACE_RE = re.compile(r"^(\s*)//(\d+)(\s*)$")


def format_today(now: datetime | None = None, timezone: str = DEFAULT_TIMEZONE) -> str:
    """Render a date the way `[today]` shows it, e.g. `7 March 2025`."""
    zone = ZoneInfo(timezone)
    moment = now.astimezone(zone) if now is not None else datetime.now(zone)
    return f"{moment.day} {MONTH_NAMES[moment.month - 1]} {moment.year}"


def promote_heading(line: str) -> str:
    """Move a `#` run in front of any leading dots or wrapper openings."""
    match = HEADING_RE.match(line)
    if match is None:
        return line
    prefix, hashes = match.group(1), match.group(2)
    return f"{hashes} {prefix}{line[match.end():]}"


def expand_indent(line: str) -> str:
    return INDENT_RE.sub(lambda m: m.group(1) + NBSP * (len(m.group(2)) * 2), line, count=1)


def vertical_space_block(line: str, line_number: int) -> str | None:
    """Return the spacer block for a sole `//N` line, or None for other lines."""
    match = VERTICAL_SPACE_RE.match(line)
    if match is None:
        return None
    leading = match.group(1)
    repeat = int(match.group(2))
    body = (leading + NBSP + "<br/>") * repeat
    return f'<div class="sync-target v-space" data-source-line="{line_number}">{body}</div>'


def transform_line(line: str, line_number: int, today: str) -> str:
    line = line.replace(TODAY_TOKEN, today)
    line = promote_heading(line)
    line = expand_indent(line)
    spacer = vertical_space_block(line, line_number)
    return spacer if spacer is not None else line


def transform_lines(text: str, today: str) -> str:
    """Apply the per-line rewrites; the result has exactly as many lines as `text`."""
    return "\n".join(
        transform_line(line, index, today) for index, line in enumerate(text.split("\n"), start=1)
    )
