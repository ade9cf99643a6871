"""
Structural chunking of source files before they are stored.

A file is split into fragments on brace boundaries: lines accumulate
until the running ``{``/``}`` depth returns to zero, or until a hard line
cap is hit for files whose braces never balance (or that have none at
all, e.g. Python).  This is a heuristic, not a parser; fragments are not
guaranteed to be syntactically complete.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: A fragment is only closed on a balanced brace depth once it holds more
#: than this many lines, so tiny one-line blocks get merged with their
#: neighbours.
MIN_CHUNK_LINES: int = 5

#: Hard cap on fragment length, regardless of brace depth.
MAX_CHUNK_LINES: int = 100


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------


def chunk_file_content(
    content: str,
    min_lines: int = MIN_CHUNK_LINES,
    max_lines: int = MAX_CHUNK_LINES,
) -> list[str]:
    """
    Split *content* into a list of fragments of at most *max_lines* lines.

    Strategy:
      1. Walk the text line by line, appending each line to a buffer.
      2. Track brace depth: ``+1`` per ``{`` and ``-1`` per ``}`` on the line.
      3. Close the buffer when the depth is back to zero and it holds more
         than *min_lines* lines, or when it has reached *max_lines* lines.
      4. Whatever is left at the end becomes the last fragment.

    Joining the result with ``"\\n"`` gives back *content* exactly.  An
    empty string yields an empty list.
    """
    if not content:
        return []

    chunks: list[str] = []
    current: list[str] = []
    depth = 0

    for line in content.split("\n"):
        current.append(line)
        depth += line.count("{") - line.count("}")

        if (depth == 0 and len(current) > min_lines) or len(current) >= max_lines:
            chunks.append("\n".join(current))
            current = []

    if current:
        chunks.append("\n".join(current))

    return chunks
