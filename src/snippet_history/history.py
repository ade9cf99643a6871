"""
HistoryManager: high-level API for capturing code and retrieving context.

This is the entry-point used by the CLI and the MCP server.  It owns a
:class:`~snippet_history.store.SnippetStore` and is the only layer that
logs: the store hands back error values and the manager reports them.

Usage example::

    from snippet_history import HistoryManager

    history = HistoryManager(db_path="~/.cache/snippet-history/snippets.json")

    # Remember a fragment the user just worked on
    history.capture("int add(int a, int b) {\\n    return a + b;\\n}", ".c")

    # Later, build the context block for a prompt about another .c file
    print(history.context_for(selected_code, ".c"))
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable

from .store import (
    DEFAULT_MAX_ENTRIES,
    CancelToken,
    IndexReport,
    ProgressCallback,
    SnippetStore,
    SourceFile,
)
from .workspace import DEFAULT_EXTENSIONS, DEFAULT_IGNORE_DIRS, iter_source_files

logger = logging.getLogger(__name__)


class HistoryManager:
    """
    Snippet history backed by a local JSON file.

    Responsibilities
    ----------------
    * **Capture** – Stores a single fragment (typically the user's current
      selection) under the type tag of its file.  Exact duplicates are
      ignored.
    * **Retrieve** – Builds the context string for a type tag from the
      three most recent matching snippets.
    * **Index** – Walks a workspace, chunks every source file and stores
      the fragments, with progress reporting and cooperative cancellation.

    Parameters
    ----------
    db_path:
        Backing JSON file for the store.
    max_entries:
        Capacity of the store; the oldest snippets are evicted beyond it.
    _store:
        Pre-built store to use instead of opening *db_path*.
    """

    def __init__(
        self,
        db_path: str | os.PathLike[str] = "./snippets.json",
        max_entries: int = DEFAULT_MAX_ENTRIES,
        _store: SnippetStore | None = None,
    ) -> None:
        if _store is None:
            _store = SnippetStore(Path(db_path).expanduser(), max_entries=max_entries)
        self._store = _store
        if self._store.load_error is not None:
            logger.warning(
                "Could not load snippet history from %s, starting empty: %s",
                self._store.path,
                self._store.load_error,
            )

    @property
    def store(self) -> SnippetStore:
        return self._store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def capture(self, text: str, type_tag: str) -> bool:
        """
        Remember *text* as a snippet of type *type_tag*.

        Returns ``True`` when the snippet was new, ``False`` when identical
        text was already stored.  A failed write is logged; the snippet is
        still kept in memory.
        """
        result = self._store.insert(text, type_tag)
        if result.error is not None:
            logger.warning("Could not save snippet history to %s: %s", self._store.path, result.error)
        if result.evicted:
            logger.debug("Evicted %d oldest snippet(s)", len(result.evicted))
        return result.inserted

    def context_for(self, text: str, type_tag: str) -> str:
        """Return the historical context string for code of type *type_tag*."""
        return self._store.query(text, type_tag)

    def index_all(
        self,
        files: Iterable[SourceFile],
        cancel: CancelToken | None = None,
        progress: ProgressCallback | None = None,
        defer_persist: bool = False,
    ) -> IndexReport:
        """
        Chunk and store every file in *files*.

        See :meth:`SnippetStore.index_all`.  Per-file failures and a failed
        save are logged here and never raised.
        """
        report = self._store.index_all(
            files, cancel=cancel, progress=progress, defer_persist=defer_persist
        )

        for path, exc in report.failures:
            logger.warning("Skipping %s: %s", path, exc)
        if report.save_error is not None:
            logger.warning(
                "Could not save snippet history to %s: %s", self._store.path, report.save_error
            )
        if report.cancelled:
            logger.info("Indexing cancelled after %d/%d files", report.processed, report.total)
        logger.info("Indexed %d files (%d new snippets)", report.processed, report.inserted)
        return report

    def index_workspace(
        self,
        root: str | os.PathLike[str],
        cancel: CancelToken | None = None,
        progress: ProgressCallback | None = None,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
        defer_persist: bool = False,
    ) -> IndexReport:
        """Index every source file under *root*."""
        files = iter_source_files(root, extensions=extensions, ignore_dirs=ignore_dirs)
        return self.index_all(files, cancel=cancel, progress=progress, defer_persist=defer_persist)

    def count(self) -> int:
        """Return the number of stored snippets."""
        return len(self._store)

    def list_all(self, limit: int = 100) -> list[dict[str, Any]]:
        """
        Return up to *limit* stored snippets in insertion order.

        Each dict has keys: ``text``, ``type_tag``, ``captured_at``.
        """
        return [s.to_dict() for s in self._store.snippets()[:limit]]
