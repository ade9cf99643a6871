"""
Shared pytest fixtures for snippet-history tests.

Stores are backed by a file under pytest's ``tmp_path`` and stamped by a
deterministic fake clock so that recency ordering is reproducible.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from snippet_history.history import HistoryManager
from snippet_history.store import SnippetStore


class FakeClock:
    """
    Callable clock returning 1.0, 2.0, 3.0, ... on successive calls.

    ``set_next`` overrides the next value, e.g. to simulate a clock that
    jumps backwards.
    """

    def __init__(self, start: float = 1.0) -> None:
        self._next = start

    def set_next(self, value: float) -> None:
        self._next = value

    def __call__(self) -> float:
        value = self._next
        self._next += 1.0
        return value


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Path of a not-yet-existing snippet history file."""
    return tmp_path / "history" / "snippets.json"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def snippet_store(db_path: Path, clock: FakeClock) -> SnippetStore:
    """Empty SnippetStore on a temporary file with the fake clock."""
    return SnippetStore(db_path, clock=clock)


@pytest.fixture()
def history_manager(snippet_store: SnippetStore) -> HistoryManager:
    """HistoryManager wired to the temporary store."""
    return HistoryManager(_store=snippet_store)


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    """Small project tree with source files, an ignored dir and a non-source file."""
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "node_modules" / "lib").mkdir(parents=True)

    (root / "src" / "main.c").write_text(
        "int main(void) {\n    int x = 1;\n    int y = 2;\n    int z = 3;\n    return x + y + z;\n}\n"
    )
    (root / "src" / "util.py").write_text("def add(a, b):\n    return a + b\n")
    (root / "README.md").write_text("# not source\n")
    (root / "node_modules" / "lib" / "index.js").write_text("module.exports = {};\n")
    return root
