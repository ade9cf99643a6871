"""
Discovery of source files for bulk indexing.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator

from .store import SourceFile

DEFAULT_EXTENSIONS = (
    ".js", ".ts", ".jsx", ".tsx", ".py", ".java",
    ".c", ".cpp", ".cs", ".php", ".rb", ".go",
)

DEFAULT_IGNORE_DIRS = frozenset({"node_modules", ".git", "__pycache__", ".venv", "dist", "build"})


def iter_source_files(
    root: str | os.PathLike[str],
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
) -> Iterator[SourceFile]:
    """
    Yield a :class:`SourceFile` for every matching file under *root*.

    Ignored directories are pruned from the walk.  Files come out in a
    stable, sorted order and are not read here; the type tag is the file
    suffix (e.g. ``".py"``).
    """
    exts = tuple(extensions)
    ignored = set(ignore_dirs)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in ignored)
        for name in sorted(filenames):
            if name.endswith(exts):
                path = Path(dirpath) / name
                yield SourceFile(path=path, type_tag=path.suffix)
