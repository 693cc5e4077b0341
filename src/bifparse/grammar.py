"""Grammar rules for BIF declarations.

Each rule takes a cursor positioned at the start of a construct and
returns ``(node, cursor)``. The declaration-level rules accept an
optional logger for tracing; they never print.
"""

from __future__ import annotations

import logging
from typing import Callable, Union

from bifparse.combinators import (
    at_keyword,
    delimited,
    keyword,
    literal,
    next_is,
    next_is_identifier,
    padded,
    repeated,
    separated_list,
    significant,
    terminated,
)
from bifparse.errors import (
    BifSyntaxError,
    InvalidNumber,
    MalformedTable,
    StateCountMismatch,
    UnexpectedToken,
    UnknownVariableType,
)
from bifparse.keywords import KEYWORDS, TYPE_KEYWORDS, Keyword
from bifparse.model import (
    Discrete,
    Network,
    Probability,
    Property,
    TableRow,
    Variable,
    VariableType,
)
from bifparse.scanner import (
    describe,
    identifier,
    quoted_string,
    separators,
    signed_float,
    skip_separators,
    unsigned_integer,
)
from bifparse.source import Cursor

logger = logging.getLogger(__name__)

Logger = Union[logging.Logger, logging.LoggerAdapter]

_names = separated_list(identifier)
_floats = separated_list(signed_float)


# ── Properties ───────────────────────────────────────────────────


def property_entry(cur: Cursor) -> tuple[Property, Cursor]:
    """``key "value"``"""
    start = cur
    try:
        key, cur = identifier(cur)
        _, cur = skip_separators(cur)
        value, cur = quoted_string(cur)
    except BifSyntaxError as e:
        e.notes.append(f"in property starting at {start.span()}")
        raise
    return Property(key=key, value=value, span=start.span(cur)), cur


def _property_item(cur: Cursor) -> tuple[Property, Cursor]:
    prop, cur = padded(property_entry)(cur)
    if next_is(";")(cur):
        cur = significant(cur).advance(1)
    return prop, cur


properties = repeated(_property_item, when=next_is_identifier)


# ── Network ──────────────────────────────────────────────────────


def network_block(cur: Cursor, log: Logger = logger) -> tuple[Network, Cursor]:
    start = cur
    _, cur = keyword(Keyword.NETWORK)(cur)
    _, cur = separators(cur)
    name, cur = identifier(cur)
    _, cur = padded(literal("{"))(cur)
    props, cur = properties(cur)
    _, cur = padded(literal("}"))(cur)
    log.debug("network %s: %d properties", name, len(props))
    return Network(name=name, properties=props, span=start.span(cur)), cur


# ── Variables ────────────────────────────────────────────────────


def _discrete_type(cur: Cursor) -> tuple[VariableType, Cursor]:
    """``[ uint ]`` following the ``discrete`` keyword."""
    _, cur = padded(literal("["))(cur)
    count_at = significant(cur)
    cardinality, cur = padded(unsigned_integer)(cur)
    _, cur = padded(literal("]"))(cur)
    if cardinality < 1:
        raise InvalidNumber(
            "a discrete variable needs at least one state",
            count_at.span(cur),
            expected="cardinality >= 1",
        )
    return Discrete(cardinality), cur


_TYPE_PARSERS: dict[Keyword, Callable[[Cursor], tuple[VariableType, Cursor]]] = {
    Keyword.DISCRETE: _discrete_type,
}


def type_clause(cur: Cursor) -> tuple[VariableType, Cursor]:
    _, cur = keyword(Keyword.TYPE)(cur)
    _, cur = separators(cur)
    word_at = cur
    word, cur = identifier(cur)
    kind = KEYWORDS.get(word)
    if kind not in TYPE_KEYWORDS:
        raise UnknownVariableType(
            f"unknown variable type '{word}'",
            word_at.span(cur),
            expected="'discrete'",
        )
    return _TYPE_PARSERS[kind](cur)


def state_list(cur: Cursor) -> tuple[list[str], Cursor]:
    """``{ name, name, ... };`` allowing an empty list."""
    states, cur = delimited(
        literal("{"),
        separated_list(identifier, allow_empty=True),
        padded(literal("}")),
    )(cur)
    _, cur = padded(literal(";"))(cur)
    return states, cur


def variable_block(cur: Cursor, log: Logger = logger) -> tuple[Variable, Cursor]:
    start = cur
    _, cur = keyword(Keyword.VARIABLE)(cur)
    _, cur = separators(cur)
    name, cur = identifier(cur)
    _, cur = padded(literal("{"))(cur)
    var_type, cur = padded(type_clause)(cur)
    _, cur = separators(cur)
    states, cur = state_list(cur)
    if next_is(";")(cur):
        cur = significant(cur).advance(1)
    props, cur = properties(cur)
    _, cur = padded(literal("}"))(cur)
    span = start.span(cur)

    if isinstance(var_type, Discrete) and len(states) != var_type.cardinality:
        raise StateCountMismatch(name, var_type.cardinality, len(states), span)

    log.debug("variable %s: %s %s", name, var_type, states)
    return Variable(
        name=name, type=var_type, states=states, properties=props, span=span,
    ), cur


# ── Probability tables ───────────────────────────────────────────


def _header(cur: Cursor) -> tuple[tuple[str, list[str]], Cursor]:
    """``( target [| parent, ...] )``"""
    _, cur = padded(literal("("))(cur)
    target, cur = padded(identifier)(cur)
    parents: list[str] = []
    if next_is("|")(cur):
        cur = significant(cur).advance(1)
        parents, cur = _names(cur)
    _, cur = padded(literal(")"))(cur)
    return (target, parents), cur


def _values(cur: Cursor) -> tuple[list[float], Cursor]:
    """``float, float, ... ;``"""
    return terminated(_floats, padded(literal(";")))(cur)


def _unconditional_table(cur: Cursor) -> tuple[list[TableRow], Cursor]:
    start = cur
    _, cur = keyword(Keyword.TABLE)(cur)
    _, cur = separators(cur)
    values, cur = _values(cur)
    return [TableRow(parent_states=[], values=values, span=start.span(cur))], cur


def _conditional_row(cur: Cursor) -> tuple[TableRow, Cursor]:
    """``( state, ... ) float, ... ;``"""
    start = significant(cur)
    _, cur = literal("(")(start)
    labels, cur = _names(cur)
    _, cur = padded(literal(")"))(cur)
    _, cur = separators(cur)
    values, cur = _values(cur)
    return TableRow(parent_states=labels, values=values, span=start.span(cur)), cur


_conditional_rows = repeated(_conditional_row, when=next_is("("))


def table_body(cur: Cursor, parents: list[str]) -> tuple[list[TableRow], Cursor]:
    """Either a single ``table`` row or one ``(states) values;`` row per line."""
    body = significant(cur)
    if at_keyword(body, Keyword.TABLE):
        if parents:
            raise MalformedTable(
                "a 'table' row cannot be used when parent variables are declared",
                body.span(body.advance(len(Keyword.TABLE.value))),
                expected="'(' starting a conditional row",
            )
        return _unconditional_table(body)

    if body.peek() != "(":
        raise MalformedTable(
            f"expected probability table, found {describe(body)}",
            body.span(),
            expected="'table' or '('",
        )
    rows, cur = _conditional_rows(body)
    for row in rows:
        if len(row.parent_states) != len(parents):
            raise MalformedTable(
                f"row lists {len(row.parent_states)} parent state(s) "
                f"but the header declares {len(parents)} parent(s)",
                row.span,
            )
    return rows, cur


def probability_block(cur: Cursor, log: Logger = logger) -> tuple[Probability, Cursor]:
    start = cur
    _, cur = keyword(Keyword.PROBABILITY)(cur)
    (target, parents), cur = _header(cur)
    _, cur = padded(literal("{"))(cur)
    rows, cur = table_body(cur, parents)
    props, cur = properties(cur)
    _, cur = padded(literal("}"))(cur)
    log.debug(
        "probability %s | %s: %d row(s)", target, ", ".join(parents) or "-", len(rows),
    )
    return Probability(
        variable=target,
        parents=parents,
        rows=rows,
        properties=props,
        span=start.span(cur),
    ), cur


def peek_keyword(cur: Cursor) -> Keyword | None:
    """The reserved word at the cursor, if any."""
    try:
        word, _ = identifier(cur)
    except UnexpectedToken:
        return None
    return KEYWORDS.get(word)
