"""
MCP (Model Context Protocol) server for snippet-history.

Exposes the HistoryManager as a set of tools so that a code assistant
can record the code it works on and pull recent same-language snippets
into its prompts.

Run as a stdio server:
    python -m snippet_history.mcp_server

Or via the installed entry-point:
    snippet-history-mcp

Configuration (environment variables):
    SNIPPET_HISTORY_DB_PATH      - path to the history file (default: ~/.cache/snippet-history/snippets.json)
    SNIPPET_HISTORY_MAX_ENTRIES  - maximum number of stored snippets (default: 1000)
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .history import HistoryManager
from .store import DEFAULT_MAX_ENTRIES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Resolve configuration from environment (with sensible defaults)
# ---------------------------------------------------------------------------

_DEFAULT_DB_PATH = str(Path.home() / ".cache" / "snippet-history" / "snippets.json")

_DB_PATH = os.environ.get("SNIPPET_HISTORY_DB_PATH", _DEFAULT_DB_PATH)
_MAX_ENTRIES = int(os.environ.get("SNIPPET_HISTORY_MAX_ENTRIES", DEFAULT_MAX_ENTRIES))

# One manager per server process, created on first use.
_manager: HistoryManager | None = None


def _get_manager() -> HistoryManager:
    global _manager
    if _manager is None:
        _manager = HistoryManager(db_path=_DB_PATH, max_entries=_MAX_ENTRIES)
    return _manager


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "snippet-history",
    instructions=(
        "Local history of code snippets, grouped by file type. "
        "Use `capture_snippet` after working on a piece of code so it can be "
        "offered as context later. "
        "Use `get_historical_context` before improving or refactoring code to "
        "fetch the most recent snippets of the same file type. "
        "Use `index_workspace` once to seed the history from a project. "
        "Use `list_snippets` and `count_snippets` to inspect what is stored."
    ),
)


@mcp.tool()
def capture_snippet(text: str, type_tag: str) -> str:
    """
    Store a code fragment for later use as historical context.

    Identical text is stored only once, whatever its type tag.

    Args:
        text:     The code to remember.
        type_tag: File type of the code, usually its extension (e.g. ".py").

    Returns:
        A confirmation message.
    """
    if _get_manager().capture(text, type_tag):
        return f"Stored snippet ({type_tag})."
    return "Snippet already stored."


@mcp.tool()
def get_historical_context(text: str, type_tag: str) -> str:
    """
    Return the most recent stored snippets with the given type tag.

    Args:
        text:     The code the context is for.
        type_tag: File type to filter by (exact, case-sensitive match).

    Returns:
        Up to three labelled snippet blocks, most recent first, or a
        message saying no context is available for the type.
    """
    return _get_manager().context_for(text, type_tag)


@mcp.tool()
def index_workspace(root: str, extensions: list[str] | None = None) -> str:
    """
    Chunk every source file under a directory and store the fragments.

    Args:
        root:       Directory to index.
        extensions: File extensions to include (default: common source types).

    Returns:
        A summary with the number of files processed and snippets added.
    """
    if not Path(root).is_dir():
        return f"Not a directory: {root}"
    kwargs = {"extensions": extensions} if extensions else {}
    report = _get_manager().index_workspace(root, **kwargs)
    summary = f"Indexed {report.processed}/{report.total} files, {report.inserted} new snippet(s)."
    if report.failures:
        summary += f" Skipped {len(report.failures)} unreadable file(s)."
    return summary


@mcp.tool()
def list_snippets(limit: int = 50) -> str:
    """
    List stored snippets in insertion order.

    Args:
        limit: Maximum number of entries to return (default 50).

    Returns:
        JSON array of snippets with text, type_tag and captured_at.
    """
    snippets = _get_manager().list_all(limit=limit)
    if not snippets:
        return "No snippets stored."
    return json.dumps(snippets, indent=2)


@mcp.tool()
def count_snippets() -> str:
    """
    Return the total number of stored snippets.

    Returns:
        A short message with the count.
    """
    n = _get_manager().count()
    return f"{n} {'snippet' if n == 1 else 'snippets'} stored."


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio."""
    # stdout carries the protocol; logs go to stderr.
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    logger.info("Serving snippet history from %s", _DB_PATH)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
