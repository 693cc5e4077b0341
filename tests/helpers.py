"""Shared test helpers for the bifparse test suite."""

from __future__ import annotations

import pytest

from bifparse.assembler import parse
from bifparse.errors import ParseError
from bifparse.model import Document
from bifparse.source import Cursor

STUDENT_BIF = """\
network unknown {
}
variable Difficulty {
  type discrete [ 2 ] { d0, d1 };
}
variable Intelligence {
  type discrete [ 2 ] { i0, i1 };
}
variable Grade {
  type discrete [ 3 ] { g0, g1, g2 };
}
variable Letter {
  type discrete [ 2 ] { l0, l1 };
}
variable SAT {
  type discrete [ 2 ] { s0, s1 };
}
probability ( Difficulty ) {
  table 0.6, 0.4;
}
probability ( Intelligence ) {
  table 0.7, 0.3;
}
probability ( Grade | Intelligence, Difficulty ) {
  (i0, d0) 0.30, 0.40, 0.30;
  (i0, d1) 0.05, 0.25, 0.70;
  (i1, d0) 0.90, 0.08, 0.02;
  (i1, d1) 0.50, 0.30, 0.20;
}
probability ( Letter | Grade ) {
  (g0) 0.10, 0.90;
  (g1) 0.40, 0.60;
  (g2) 0.99, 0.01;
}
probability ( SAT | Intelligence ) {
  (i0) 0.95, 0.05;
  (i1) 0.20, 0.80;
}
"""

COIN_HEADER = """\
network coins {
}
variable A {
  type discrete [ 2 ] { a0, a1 };
}
variable B {
  type discrete [ 2 ] { b0, b1 };
}
"""


def cursor(text: str) -> Cursor:
    """Helper: a cursor at the start of ``text``."""
    return Cursor(text, 0, "test.bif")


def parse_ok(source: str) -> Document:
    """Parse source, asserting no warnings. Returns the document."""
    result = parse(source, "test.bif")
    assert not result.diagnostics, [f"{d.code}: {d.message}" for d in result.diagnostics]
    return result.document


def parse_fails(source: str, error: type[ParseError]) -> ParseError:
    """Parse source, asserting the given error type is raised."""
    with pytest.raises(error) as info:
        parse(source, "test.bif")
    return info.value


def coins(*tables: str) -> str:
    """Helper: the two-variable coin network followed by ``tables``."""
    return COIN_HEADER + "\n".join(tables)
