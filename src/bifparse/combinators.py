"""Small rule combinators.

A rule is any callable ``Cursor -> (value, Cursor)`` that raises a
:class:`~bifparse.errors.BifSyntaxError` when the input does not match.
Repetition and optional parts are guarded by a lookahead predicate
rather than by catching failures, so rules never backtrack.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from bifparse.errors import UnexpectedToken
from bifparse.keywords import Keyword
from bifparse.scanner import describe, is_ident_char, skip_separators
from bifparse.source import Cursor

T = TypeVar("T")
U = TypeVar("U")

Rule = Callable[[Cursor], tuple[T, Cursor]]
Predicate = Callable[[Cursor], bool]


def significant(cur: Cursor) -> Cursor:
    """The cursor after any separators, for lookahead."""
    return skip_separators(cur)[1]


def next_is(ch: str) -> Predicate:
    def check(cur: Cursor) -> bool:
        return significant(cur).peek() == ch
    return check


def next_is_identifier(cur: Cursor) -> bool:
    return is_ident_char(significant(cur).peek())


def at_keyword(cur: Cursor, kw: Keyword) -> bool:
    word = kw.value
    return cur.startswith(word) and not is_ident_char(cur.peek(len(word)))


# ── Terminals ───────────────────────────────────────────────────


def literal(text: str) -> Rule[str]:
    def rule(cur: Cursor) -> tuple[str, Cursor]:
        if cur.startswith(text):
            return text, cur.advance(len(text))
        raise UnexpectedToken(
            f"expected '{text}', found {describe(cur)}",
            cur.span(),
            expected=f"'{text}'",
        )
    return rule


def keyword(kw: Keyword) -> Rule[Keyword]:
    """Match a reserved word that is not the prefix of a longer identifier."""
    def rule(cur: Cursor) -> tuple[Keyword, Cursor]:
        if at_keyword(cur, kw):
            return kw, cur.advance(len(kw.value))
        raise UnexpectedToken(
            f"expected '{kw.value}', found {describe(cur)}",
            cur.span(),
            expected=f"'{kw.value}'",
        )
    return rule


# ── Sequencing ──────────────────────────────────────────────────


def preceded(first: Rule[U], second: Rule[T]) -> Rule[T]:
    def rule(cur: Cursor) -> tuple[T, Cursor]:
        _, cur = first(cur)
        return second(cur)
    return rule


def terminated(first: Rule[T], second: Rule[U]) -> Rule[T]:
    def rule(cur: Cursor) -> tuple[T, Cursor]:
        value, cur = first(cur)
        _, cur = second(cur)
        return value, cur
    return rule


def delimited(open_: Rule[U], inner: Rule[T], close: Rule[U]) -> Rule[T]:
    return terminated(preceded(open_, inner), close)


def padded(rule: Rule[T]) -> Rule[T]:
    """Allow optional separators before ``rule``."""
    return preceded(skip_separators, rule)


# ── Repetition ──────────────────────────────────────────────────


def repeated(rule: Rule[T], when: Predicate) -> Rule[list[T]]:
    """Apply ``rule`` zero or more times while ``when`` holds."""
    def repeat(cur: Cursor) -> tuple[list[T], Cursor]:
        items: list[T] = []
        while when(cur):
            item, nxt = rule(cur)
            if nxt.pos == cur.pos:
                break
            items.append(item)
            cur = nxt
        return items, cur
    return repeat


def separated_list(
    item: Rule[T],
    *,
    allow_empty: bool = False,
    starts: Predicate = next_is_identifier,
    separator: str = ",",
) -> Rule[list[T]]:
    """``item (sep item)*`` with optional separators around each ``sep``.

    With ``allow_empty`` the list is empty when ``starts`` does not hold.
    The returned cursor sits just after the last item.
    """
    def rule(cur: Cursor) -> tuple[list[T], Cursor]:
        if allow_empty and not starts(cur):
            return [], cur
        value, cur = padded(item)(cur)
        items = [value]
        while next_is(separator)(cur):
            cur = significant(cur).advance(len(separator))
            value, cur = padded(item)(cur)
            items.append(value)
        return items, cur
    return rule
