"""Lexical primitives of the BIF grammar.

Each primitive takes a :class:`Cursor` and returns ``(value, cursor)``
positioned just past what it consumed, or raises a syntax error located
at the point of failure. None of them skip leading whitespace; callers
place separators explicitly.
"""

from __future__ import annotations

import math

from bifparse.errors import InvalidNumber, UnexpectedToken, UnterminatedString
from bifparse.source import Cursor


def is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def describe(cur: Cursor) -> str:
    """Short human description of what sits at the cursor, for messages."""
    if cur.at_end():
        return "end of input"
    end = cur.pos
    text = cur.text
    if is_ident_char(text[end]):
        while end < len(text) and is_ident_char(text[end]):
            end += 1
    else:
        end += 1
    return repr(text[cur.pos:end])


# ── Separators ──────────────────────────────────────────────────


def skip_separators(cur: Cursor) -> tuple[None, Cursor]:
    """Consume whitespace and ``//`` line comments (zero or more)."""
    text = cur.text
    pos = cur.pos
    while pos < len(text):
        ch = text[pos]
        if ch.isspace():
            pos += 1
        elif ch == "/" and text.startswith("//", pos):
            newline = text.find("\n", pos)
            pos = len(text) if newline == -1 else newline + 1
        else:
            break
    return None, cur.advance(pos - cur.pos)


def separators(cur: Cursor) -> tuple[None, Cursor]:
    """Like :func:`skip_separators` but at least one separator is required."""
    _, after = skip_separators(cur)
    if after.pos == cur.pos:
        raise UnexpectedToken(
            f"expected whitespace, found {describe(cur)}",
            cur.span(),
            expected="whitespace",
        )
    return None, after


# ── Names and strings ───────────────────────────────────────────


def identifier(cur: Cursor) -> tuple[str, Cursor]:
    text = cur.text
    end = cur.pos
    while end < len(text) and is_ident_char(text[end]):
        end += 1
    if end == cur.pos:
        raise UnexpectedToken(
            f"expected identifier, found {describe(cur)}",
            cur.span(),
            expected="identifier",
        )
    return text[cur.pos:end], cur.advance(end - cur.pos)


def quoted_string(cur: Cursor) -> tuple[str, Cursor]:
    """Consume ``"..."`` and return the characters between the quotes.

    A backslash escapes the following character, so ``\\"`` does not
    close the string. Escapes are kept verbatim in the returned value.
    """
    if cur.peek() != '"':
        raise UnexpectedToken(
            f"expected string, found {describe(cur)}",
            cur.span(),
            expected="'\"'",
        )
    text = cur.text
    start = cur.pos + 1
    pos = start
    while pos < len(text):
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == '"':
            return text[start:pos], cur.advance(pos + 1 - cur.pos)
        pos += 1
    raise UnterminatedString("unterminated string literal", cur.span(), expected="'\"'")


# ── Numbers ─────────────────────────────────────────────────────


def _digits_end(text: str, pos: int) -> int:
    while pos < len(text) and "0" <= text[pos] <= "9":
        pos += 1
    return pos


def unsigned_integer(cur: Cursor) -> tuple[int, Cursor]:
    end = _digits_end(cur.text, cur.pos)
    if end == cur.pos:
        raise InvalidNumber(
            f"expected unsigned integer, found {describe(cur)}",
            cur.span(),
            expected="digits",
        )
    return int(cur.text[cur.pos:end]), cur.advance(end - cur.pos)


def signed_float(cur: Cursor) -> tuple[float, Cursor]:
    """``-? digit+ ("." digit+)? ([eE] [+-]? digit+)?``"""
    text = cur.text
    pos = cur.pos
    if pos < len(text) and text[pos] == "-":
        pos += 1
    end = _digits_end(text, pos)
    if end == pos:
        raise InvalidNumber(
            f"expected number, found {describe(cur)}",
            cur.span(),
            expected="number",
        )
    pos = end
    if pos < len(text) and text[pos] == ".":
        frac_end = _digits_end(text, pos + 1)
        if frac_end > pos + 1:
            pos = frac_end
    if pos < len(text) and text[pos] in "eE":
        exp = pos + 1
        if exp < len(text) and text[exp] in "+-":
            exp += 1
        exp_end = _digits_end(text, exp)
        if exp_end > exp:
            pos = exp_end
    literal = text[cur.pos:pos]
    value = float(literal)
    if not math.isfinite(value):
        raise InvalidNumber(
            f"number {literal!r} is not a finite value",
            cur.span(cur.advance(pos - cur.pos)),
        )
    return value, cur.advance(pos - cur.pos)
