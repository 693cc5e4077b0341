"""Input buffer, cursor positions and span tracking for diagnostics."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Span:
    """A range within a source document.

    ``offset`` is the character (not byte) index where the span starts;
    :meth:`SourceText.byte_offset` converts it for byte-oriented tools.
    """

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    offset: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"


def line_starts(text: str) -> tuple[int, ...]:
    """Offsets at which each line of ``text`` begins."""
    starts = [0]
    pos = text.find("\n")
    while pos != -1:
        starts.append(pos + 1)
        pos = text.find("\n", pos + 1)
    return tuple(starts)


@dataclass(frozen=True)
class Cursor:
    """An immutable position within the input text.

    Grammar rules never mutate a cursor; advancing returns a new one that
    shares the document's line table, built once on first construction.
    """

    text: str
    pos: int = 0
    filename: str = "<input>"
    lines: tuple[int, ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.lines:
            object.__setattr__(self, "lines", line_starts(self.text))

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.text):
            return self.text[idx]
        return "\0"

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos)

    def rest(self) -> str:
        return self.text[self.pos:]

    def advance(self, n: int = 1) -> Cursor:
        return Cursor(
            self.text, min(self.pos + n, len(self.text)), self.filename, self.lines,
        )

    def line_col(self, pos: int | None = None) -> tuple[int, int]:
        """Translate a character offset into a 1-indexed (line, column)."""
        if pos is None:
            pos = self.pos
        line = bisect_right(self.lines, pos)
        return line, pos - self.lines[line - 1] + 1

    def span(self, end: Cursor | None = None) -> Span:
        """Span from this cursor to ``end`` (or a single character)."""
        start_line, start_col = self.line_col()
        if end is None or end.pos <= self.pos:
            return Span(self.filename, start_line, start_col,
                        start_line, start_col, self.pos)
        end_line, end_col = self.line_col(end.pos - 1)
        return Span(self.filename, start_line, start_col, end_line, end_col, self.pos)


class SourceText:
    """A loaded document with line access for diagnostics."""

    def __init__(self, text: str, filename: str = "<input>") -> None:
        self.filename = filename
        self.content = text
        self.lines = [line.rstrip("\r") for line in text.split("\n")]

    @classmethod
    def from_path(cls, path: Path) -> SourceText:
        return cls(path.read_text(encoding="utf-8"), str(path))

    def cursor(self) -> Cursor:
        return Cursor(self.content, 0, self.filename)

    def line_at(self, n: int) -> str | None:
        """Return the 1-indexed line, or None if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return None

    def byte_offset(self, span: Span) -> int:
        """UTF-8 byte offset of the start of ``span``."""
        return len(self.content[: span.offset].encode("utf-8"))
