"""
File-backed snippet store: deduplicated, capacity-bounded, recency-ranked.

The whole collection lives in memory and is mirrored to a single JSON
file.  Reads never touch the disk; every successful insert rewrites the
file.  Failures to load or save are returned as values (see
``SnippetStore.load_error``, ``InsertResult.error`` and
``IndexReport``) so that the caller decides how loudly to report them.
"""

from __future__ import annotations

import heapq
import itertools
import json
import math
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from .chunker import chunk_file_content

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Default capacity of a store.
DEFAULT_MAX_ENTRIES: int = 1000

#: Number of snippets rendered into a context string.
CONTEXT_SIZE: int = 3

#: Returned by ``SnippetStore.query`` when nothing matches the type tag.
NO_CONTEXT_MESSAGE: str = "No historical context available for this file type."


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Snippet:
    """One stored code fragment."""

    text: str
    type_tag: str
    captured_at: float

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "type_tag": self.type_tag, "captured_at": self.captured_at}

    @classmethod
    def from_dict(cls, data: Any) -> Snippet:
        """Build a snippet from a decoded JSON object, rejecting anything malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"snippet record must be an object, got {type(data).__name__}")
        text = data.get("text")
        type_tag = data.get("type_tag")
        captured_at = data.get("captured_at")
        if not isinstance(text, str) or not isinstance(type_tag, str):
            raise ValueError("snippet record needs string 'text' and 'type_tag'")
        if isinstance(captured_at, bool) or not isinstance(captured_at, (int, float)):
            raise ValueError("snippet record needs a numeric 'captured_at'")
        if isinstance(captured_at, float) and not math.isfinite(captured_at):
            raise ValueError(f"snippet record has a non-finite 'captured_at': {captured_at}")
        try:
            captured_at = float(captured_at)
            datetime.fromtimestamp(captured_at)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"snippet record has an out-of-range 'captured_at': {captured_at}") from exc
        return cls(text=text, type_tag=type_tag, captured_at=captured_at)


@dataclass
class InsertResult:
    """Outcome of ``SnippetStore.insert``."""

    inserted: bool
    evicted: list[Snippet] = field(default_factory=list)
    error: OSError | None = None


@dataclass
class SourceFile:
    """
    A file offered for bulk ingestion.

    When *content* is ``None`` the file is read from *path* at ingestion
    time, so read errors are reported per file.
    """

    path: Path
    type_tag: str
    content: str | None = None

    def read(self) -> str:
        if self.content is not None:
            return self.content
        return Path(self.path).read_text(encoding="utf-8")


@dataclass
class IndexReport:
    """Outcome of a bulk ingestion run."""

    processed: int = 0
    total: int = 0
    inserted: int = 0
    cancelled: bool = False
    failures: list[tuple[Path, Exception]] = field(default_factory=list)
    save_error: OSError | None = None


class CancelToken(Protocol):
    """Anything with ``is_set()``; ``threading.Event`` is the usual choice."""

    def is_set(self) -> bool: ...


ProgressCallback = Callable[[int, int], None]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SnippetStore:
    """
    Ordered collection of :class:`Snippet` persisted to a JSON file.

    Invariants
    ----------
    * No two stored snippets share the same ``text``.
    * At most ``max_entries`` snippets are held once an insert returns;
      the ones kept are the most recent by ``captured_at``.

    Snippets are kept in insertion order.  A min-heap keyed on
    ``(captured_at, sequence)`` finds eviction victims without sorting
    the whole collection.

    Parameters
    ----------
    path:
        Backing JSON file.  It does not have to exist yet.
    max_entries:
        Capacity of the store.
    clock:
        Source of timestamps, ``time.time`` by default.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.path = Path(path)
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.RLock()
        self._seq = itertools.count()
        self._snippets: dict[str, Snippet] = {}
        self._heap: list[tuple[float, int, str]] = []
        self._order: dict[str, int] = {}
        self._last_captured_at = float("-inf")
        self.load_error: Exception | None = self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> Exception | None:
        """
        Replace the in-memory collection with the backing file's contents.

        A missing file is a normal cold start and returns ``None``.  A file
        that cannot be read or decoded also leaves the store empty; the
        exception is returned instead of raised.
        """
        with self._lock:
            self._reset()
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(raw, list):
                    raise ValueError("snippet file must contain a JSON array")
                snippets = [Snippet.from_dict(item) for item in raw]
            except (FileNotFoundError, NotADirectoryError):
                return None
            except (OSError, ValueError) as exc:
                # json.JSONDecodeError and UnicodeDecodeError are ValueErrors.
                return exc
            for snippet in snippets:
                if snippet.text not in self._snippets:
                    self._add(snippet)
            return None

    def save(self) -> OSError | None:
        """Write the full collection to the backing file; return the error, if any."""
        with self._lock:
            payload = [s.to_dict() for s in self._snippets.values()]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            return exc
        return None

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def insert(self, text: str, type_tag: str, persist: bool = True) -> InsertResult:
        """
        Store *text* under *type_tag* unless identical text is already stored.

        A duplicate is a no-op: the existing snippet keeps its type tag and
        timestamp and nothing is written to disk.  Otherwise the snippet is
        appended, the oldest entries are evicted while the store is over
        capacity, and (when *persist* is true) the file is rewritten.
        """
        with self._lock:
            if text in self._snippets:
                return InsertResult(inserted=False)

            # Timestamps never go backwards, even if the clock does.
            captured_at = max(float(self._clock()), self._last_captured_at)
            self._add(Snippet(text=text, type_tag=type_tag, captured_at=captured_at))
            evicted = self._evict()

            error = self.save() if persist else None
            return InsertResult(inserted=True, evicted=evicted, error=error)

    def index_all(
        self,
        files: Iterable[SourceFile],
        cancel: CancelToken | None = None,
        progress: ProgressCallback | None = None,
        defer_persist: bool = False,
    ) -> IndexReport:
        """
        Chunk every file in *files* and insert each fragment.

        *cancel* is polled before each file; once set, the run stops and
        everything already inserted stays.  *progress* is called with
        ``(processed, total)`` after each file.  A file that cannot be read
        or chunked is recorded in ``IndexReport.failures`` and skipped.

        With *defer_persist* the file is written once at the end of the run
        instead of after every new snippet.
        """
        files = list(files)
        report = IndexReport(total=len(files))

        for source in files:
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                break

            try:
                chunks = chunk_file_content(source.read())
            except (OSError, ValueError) as exc:
                report.failures.append((Path(source.path), exc))
                continue

            for chunk in chunks:
                result = self.insert(chunk, source.type_tag, persist=not defer_persist)
                if result.inserted:
                    report.inserted += 1
                if result.error is not None:
                    report.save_error = result.error

            report.processed += 1
            if progress is not None:
                progress(report.processed, report.total)

        if defer_persist and report.inserted:
            report.save_error = self.save()

        return report

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def query(self, text: str, type_tag: str) -> str:
        """
        Render the most recent snippets stored under *type_tag*.

        *text* is the code the caller is working on.  It does not affect
        the result yet; ranking is purely by recency within the type tag.
        """
        with self._lock:
            recent = self.recent(type_tag, CONTEXT_SIZE)
        if not recent:
            return NO_CONTEXT_MESSAGE
        return "\n".join(format_snippet(s) for s in recent)

    def recent(self, type_tag: str, limit: int = CONTEXT_SIZE) -> list[Snippet]:
        """Return up to *limit* snippets with *type_tag*, most recent first."""
        with self._lock:
            matches = [s for s in self._snippets.values() if s.type_tag == type_tag]
            return heapq.nlargest(limit, matches, key=self._recency_key)

    def snippets(self) -> list[Snippet]:
        """Return all snippets in insertion order."""
        with self._lock:
            return list(self._snippets.values())

    def __contains__(self, text: object) -> bool:
        return text in self._snippets

    def __len__(self) -> int:
        return len(self._snippets)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._snippets = {}
        self._heap = []
        self._order = {}
        self._last_captured_at = float("-inf")

    def _add(self, snippet: Snippet) -> None:
        seq = next(self._seq)
        self._snippets[snippet.text] = snippet
        self._order[snippet.text] = seq
        heapq.heappush(self._heap, (snippet.captured_at, seq, snippet.text))
        self._last_captured_at = max(self._last_captured_at, snippet.captured_at)

    def _evict(self) -> list[Snippet]:
        evicted: list[Snippet] = []
        while len(self._snippets) > self.max_entries:
            _, _, text = heapq.heappop(self._heap)
            evicted.append(self._snippets.pop(text))
            del self._order[text]
        return evicted

    def _recency_key(self, snippet: Snippet) -> tuple[float, int]:
        return snippet.captured_at, self._order[snippet.text]


def format_snippet(snippet: Snippet) -> str:
    """Render one snippet as a labelled context block."""
    day = datetime.fromtimestamp(snippet.captured_at).date().isoformat()
    return f"--- Historical Code ({day}) ---\n{snippet.text}\n"
