"""
Command-line interface for snippet-history.

Sub-commands
------------
capture – Store a code fragment under a type tag.
context – Print the historical context for a type tag.
index   – Chunk and store every source file under a directory.
list    – List stored snippets.
count   – Print the number of stored snippets.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Any

from .history import HistoryManager
from .store import DEFAULT_MAX_ENTRIES, IndexReport
from .workspace import DEFAULT_EXTENSIONS

DEFAULT_DB_PATH = str(Path.home() / ".cache" / "snippet-history" / "snippets.json")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snippet-history",
        description="Local history of code snippets for code-assistant context.",
    )
    parser.add_argument(
        "--db",
        default=DEFAULT_DB_PATH,
        metavar="PATH",
        help=f"Path to the snippet history file (default: {DEFAULT_DB_PATH}).",
    )
    parser.add_argument(
        "--max-entries",
        type=int,
        default=DEFAULT_MAX_ENTRIES,
        metavar="N",
        help=f"Maximum number of snippets kept (default: {DEFAULT_MAX_ENTRIES}).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress details.")

    sub = parser.add_subparsers(dest="command", required=True)

    # capture
    p_capture = sub.add_parser("capture", help="Store a code fragment.")
    p_capture.add_argument("text", nargs="?", help="Code to store (reads stdin if omitted).")
    p_capture.add_argument("--type", dest="type_tag", required=True, help="Type tag, e.g. '.py'.")

    # context
    p_context = sub.add_parser("context", help="Print historical context for a type tag.")
    p_context.add_argument("--type", dest="type_tag", required=True, help="Type tag, e.g. '.py'.")
    p_context.add_argument(
        "text", nargs="?", default="", help="Code the context is requested for (optional)."
    )

    # index
    p_index = sub.add_parser("index", help="Index every source file under a directory.")
    p_index.add_argument("root", nargs="?", default=".", help="Directory to index (default: .).")
    p_index.add_argument(
        "--ext",
        action="append",
        dest="extensions",
        metavar="EXT",
        help="File extension to include; repeatable (default: common source types).",
    )
    p_index.add_argument(
        "--defer-save",
        action="store_true",
        help="Write the history file once at the end instead of after every snippet.",
    )

    # list
    p_list = sub.add_parser("list", help="List stored snippets.")
    p_list.add_argument(
        "--limit",
        type=int,
        default=100,
        metavar="N",
        help="Maximum number of snippets to show (default: 100).",
    )
    p_list.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # count
    sub.add_parser("count", help="Print the number of stored snippets.")

    return parser


def _print_progress(processed: int, total: int) -> None:
    print(f"\r{processed}/{total} files processed", end="", file=sys.stderr, flush=True)


def _run_index(manager: HistoryManager, args: argparse.Namespace) -> IndexReport:
    """Index on a worker thread so Ctrl+C cancels between files."""
    cancel = threading.Event()
    outcome: dict[str, Any] = {}

    def _work() -> None:
        try:
            outcome["report"] = manager.index_workspace(
                args.root,
                cancel=cancel,
                progress=_print_progress,
                extensions=args.extensions or DEFAULT_EXTENSIONS,
                defer_persist=args.defer_save,
            )
        except Exception as exc:
            outcome["error"] = exc

    worker = threading.Thread(target=_work, name="snippet-history-index")
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.1)
    except KeyboardInterrupt:
        cancel.set()
        worker.join()
    print(file=sys.stderr)
    if "error" in outcome:
        raise outcome["error"]
    return outcome["report"]


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.max_entries < 1:
        print("Error: --max-entries must be at least 1.", file=sys.stderr)
        return 1

    manager = HistoryManager(db_path=args.db, max_entries=args.max_entries)

    if args.command == "capture":
        text = args.text
        if text is None:
            text = sys.stdin.read()
        if not text.strip():
            print("Error: no text provided.", file=sys.stderr)
            return 1
        if manager.capture(text, args.type_tag):
            print(f"Stored snippet ({args.type_tag}).")
        else:
            print("Snippet already stored.")

    elif args.command == "context":
        print(manager.context_for(args.text, args.type_tag))

    elif args.command == "index":
        if not Path(args.root).is_dir():
            print(f"Error: {args.root} is not a directory.", file=sys.stderr)
            return 1
        report = _run_index(manager, args)
        status = "Cancelled" if report.cancelled else "Indexed"
        print(f"{status}: {report.processed}/{report.total} files, {report.inserted} new snippet(s).")
        if report.failures:
            print(f"Skipped {len(report.failures)} unreadable file(s).")

    elif args.command == "list":
        snippets = manager.list_all(limit=args.limit)
        if not snippets:
            print("No snippets stored.")
            return 0
        if args.as_json:
            print(json.dumps(snippets, indent=2))
        else:
            for s in snippets:
                print(f"type={s['type_tag']} ts={s['captured_at']:.0f}")
                print(f"    {s['text'][:120]}")
                print()

    elif args.command == "count":
        print(manager.count())

    return 0


if __name__ == "__main__":
    sys.exit(main())
