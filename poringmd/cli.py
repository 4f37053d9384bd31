"""Command-line entry point: open the editor, or render HTML without a window."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .renderer import PoringRenderer


def _render_html(source_path: Path, output_path: Path, renderer: PoringRenderer) -> int:
    try:
        source = source_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        print(f"Could not read {source_path}: {exc}", file=sys.stderr)
        return 2
    html_doc = renderer.render_document(source, source_path.name)
    try:
        output_path.write_text(html_doc, encoding="utf-8")
    except OSError as exc:
        print(f"Could not write {output_path}: {exc}", file=sys.stderr)
        return 2
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="poringmd",
        description="Edit Poring-flavoured markdown notes with a paginated live preview.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Note to open (default: start with an empty buffer).",
    )
    parser.add_argument(
        "--html",
        metavar="OUT",
        default=None,
        help="Render the note's preview HTML to OUT and exit without opening a window.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="Config file to read instead of ~/.poringmd.cfg.",
    )
    args = parser.parse_args(argv)

    config = load_config(Path(args.config).expanduser() if args.config is not None else None)
    path = Path(args.path).expanduser() if args.path is not None else None
    if path is not None and not path.is_file():
        print(f"Path is not a file: {path}", file=sys.stderr)
        return 2

    if args.html is not None:
        if path is None:
            print("--html needs a note to render", file=sys.stderr)
            return 2
        return _render_html(path, Path(args.html).expanduser(), PoringRenderer(config))

    try:
        from .app import run_editor
    except ImportError as exc:
        print(f"The editor window needs PySide6 with QtWebEngine: {exc}", file=sys.stderr)
        return 2
    return run_editor(path, config)
