"""Tests for the brace-depth chunker."""

from __future__ import annotations

from snippet_history.chunker import MAX_CHUNK_LINES, chunk_file_content


def _block(name: str) -> list[str]:
    """A six-line brace-balanced C function."""
    return [
        f"int {name}(void) {{",
        "    int a = 1;",
        "    int b = 2;",
        "    int c = a + b;",
        "    return c;",
        "}",
    ]


class TestChunkFileContent:
    def test_empty_string_returns_empty_list(self):
        assert chunk_file_content("") == []

    def test_short_text_is_one_chunk(self):
        assert chunk_file_content("int x = 1;") == ["int x = 1;"]

    def test_splits_after_balanced_block(self):
        lines = _block("first") + _block("second")
        chunks = chunk_file_content("\n".join(lines))
        assert len(chunks) == 2
        assert chunks[0].split("\n") == lines[:6]
        assert chunks[1].split("\n") == lines[6:]

    def test_balanced_block_of_five_lines_is_not_closed(self):
        lines = ["void f() {", "  a();", "  b();", "  c();", "}", "int y;", "int z;"]
        chunks = chunk_file_content("\n".join(lines))
        # Depth is zero after line 5 but the buffer is not yet above 5 lines;
        # it closes on line 6 instead.
        assert chunks[0].split("\n") == lines[:6]
        assert chunks[1] == "int z;"

    def test_unbalanced_braces_hit_hard_cap(self):
        lines = ["{"] + [f"line {i}" for i in range(250)]
        chunks = chunk_file_content("\n".join(lines))
        assert len(chunks) == 3
        assert all(len(c.split("\n")) <= MAX_CHUNK_LINES for c in chunks)

    def test_braceless_text_closes_every_six_lines(self):
        lines = [f"x{i} = {i}" for i in range(205)]
        chunks = chunk_file_content("\n".join(lines))
        # No braces means depth stays zero, so chunks close every six lines.
        assert all(len(c.split("\n")) == 6 for c in chunks[:-1])

    def test_no_chunk_exceeds_max_lines(self):
        text = "\n".join("{ nested" if i % 3 else "more }" for i in range(1000))
        for chunk in chunk_file_content(text):
            assert len(chunk.split("\n")) <= MAX_CHUNK_LINES

    def test_chunks_rejoin_to_original(self):
        samples = [
            "a",
            "\n",
            "trailing newline\n",
            "\n".join(_block("f")) + "\n",
            "\n".join(_block("f") + _block("g")) + "\n\n\n",
            "{\n" * 150 + "}\n" * 150,
            "}}}\n{{{\nodd\n" * 40,
        ]
        for text in samples:
            assert "\n".join(chunk_file_content(text)) == text, repr(text[:40])

    def test_negative_depth_does_not_close_chunks(self):
        lines = ["}"] + [f"stmt{i};" for i in range(10)]
        chunks = chunk_file_content("\n".join(lines))
        assert chunks == ["\n".join(lines)]
