"""
snippet-history: a local, file-backed history of code snippets.

Gives code-assistant tools "historical context" about a codebase by
remembering previously seen fragments and returning the most recent ones
of the same file type.
"""

from .chunker import chunk_file_content
from .history import HistoryManager
from .store import IndexReport, InsertResult, Snippet, SnippetStore, SourceFile
from .workspace import iter_source_files

__all__ = [
    "HistoryManager",
    "IndexReport",
    "InsertResult",
    "Snippet",
    "SnippetStore",
    "SourceFile",
    "chunk_file_content",
    "iter_source_files",
]
