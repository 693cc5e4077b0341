"""Diagnostics, Rust-style colored rendering, and the parse error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from bifparse.source import SourceText, Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str
    style: str = "primary"  # "primary" or "secondary"


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def span(self) -> Span | None:
        return self.labels[0].span if self.labels else None


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors.

    Single-line spans are underlined with carets. A span covering several
    lines (a whole declaration, say) quotes its first and last line with
    a ``...`` gutter in between.
    """

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._sources: dict[str, SourceText | None] = {}

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def add_source(self, source: SourceText) -> None:
        """Register in-memory text so labels can quote it without disk access."""
        self._sources[source.filename] = source

    def _source(self, filename: str) -> SourceText | None:
        if filename not in self._sources:
            try:
                self._sources[filename] = SourceText.from_path(Path(filename))
            except (OSError, UnicodeDecodeError):
                self._sources[filename] = None
        return self._sources[filename]

    def _quote(self, out: list[str], source: SourceText | None, line_num: int) -> None:
        text = source.line_at(line_num) if source is not None else None
        if text is not None:
            out.append(f"  {self._c(_BLUE)}{line_num:>4} |{self._c(_RESET)} {text}")

    def _underline(self, out: list[str], color: str, start: int, width: int) -> None:
        out.append(
            f"  {self._c(_BLUE)}     |{self._c(_RESET)} "
            f"{' ' * (start - 1)}{self._c(color)}{'^' * max(1, width)}{self._c(_RESET)}"
        )

    def render(self, diag: Diagnostic) -> str:
        out: list[str] = []
        color = _COLORS[diag.severity]

        # error[E101]: message
        out.append(
            f"{self._c(color)}{diag.severity.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            source = self._source(span.file)
            out.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
            out.append(f"  {self._c(_BLUE)}     |{self._c(_RESET)}")

            self._quote(out, source, span.start_line)
            if span.end_line == span.start_line:
                self._underline(out, color, span.start_col, span.end_col - span.start_col + 1)
            else:
                first = source.line_at(span.start_line) if source is not None else None
                width = len(first) - span.start_col + 1 if first is not None else 1
                self._underline(out, color, span.start_col, width)
                if span.end_line > span.start_line + 1:
                    out.append(f"  {self._c(_BLUE)} ... |{self._c(_RESET)}")
                self._quote(out, source, span.end_line)
                self._underline(out, color, 1, span.end_col)

            if label.message:
                out.append(
                    f"  {self._c(_BLUE)}     |{self._c(_RESET)} "
                    f"{self._c(color)}{label.message}{self._c(_RESET)}"
                )

        for note in diag.notes:
            out.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(out)


# ── Fatal errors ────────────────────────────────────────────────


class ParseError(Exception):
    """Base of every fatal error raised while reading a document."""

    code = "E000"

    def __init__(
        self,
        message: str,
        span: Span,
        *,
        expected: str | None = None,
        notes: list[str] | None = None,
    ) -> None:
        self.message = message
        self.span = span
        self.expected = expected
        self.notes = list(notes or [])
        super().__init__(f"{span}: {message}")

    @property
    def offset(self) -> int:
        """Character offset of the failure; see :meth:`SourceText.byte_offset`."""
        return self.span.offset

    @property
    def diagnostic(self) -> Diagnostic:
        label = f"expected {self.expected}" if self.expected else ""
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=self.message,
            labels=[DiagnosticLabel(span=self.span, message=label)],
            notes=self.notes,
        )


class BifSyntaxError(ParseError):
    """A grammar rule failed to recognize the input."""


class ValidationError(ParseError):
    """A syntactically valid document is semantically inconsistent."""


class UnexpectedToken(BifSyntaxError):
    code = "E101"


class UnterminatedString(BifSyntaxError):
    code = "E102"


class InvalidNumber(BifSyntaxError):
    code = "E103"


class UnknownVariableType(BifSyntaxError):
    code = "E104"


class MalformedTable(BifSyntaxError):
    code = "E105"


class MissingNetworkDeclaration(ValidationError):
    code = "E201"


class StateCountMismatch(ValidationError):
    code = "E202"

    def __init__(self, variable: str, expected: int, actual: int, span: Span) -> None:
        super().__init__(
            f"variable '{variable}' declares {expected} state(s) but lists {actual}",
            span,
        )
        self.variable = variable
        self.expected = expected
        self.actual = actual


class DuplicateVariableName(ValidationError):
    code = "E203"


class UnresolvedVariableReference(ValidationError):
    code = "E204"


class ValueCountMismatch(ValidationError):
    code = "E205"


class DuplicateTableRow(ValidationError):
    code = "E206"


class IncompleteTable(ValidationError):
    code = "E207"

    def __init__(self, message: str, span: Span, missing: list[tuple[str, ...]]) -> None:
        self.missing = missing
        shown = ", ".join("(" + ", ".join(m) + ")" for m in missing[:5])
        if len(missing) > 5:
            shown += ", ..."
        super().__init__(message, span, notes=[f"missing rows: {shown}"])


class TrailingInput(ValidationError):
    code = "E208"


class UnknownStateLabel(ValidationError):
    code = "E209"


class DuplicateProbability(ValidationError):
    code = "E210"


# ── Advisory diagnostics ────────────────────────────────────────

ROW_SUM_DEVIATION = "W301"
VALUE_OUT_OF_RANGE = "W302"
