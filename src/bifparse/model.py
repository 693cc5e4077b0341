"""In-memory representation of a parsed BIF document."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Union

from bifparse.errors import Diagnostic, Severity
from bifparse.source import Span

# ── Annotations ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Property:
    key: str
    value: str
    span: Span


# ── Network ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Network:
    name: str
    properties: list[Property]
    span: Span


# ── Variables ────────────────────────────────────────────────────


@dataclass(frozen=True)
class Discrete:
    """A variable taking one of ``cardinality`` labelled states."""

    cardinality: int

    def __str__(self) -> str:
        return f"discrete[{self.cardinality}]"


# Future kinds (e.g. continuous) join this union.
VariableType = Union[Discrete]


@dataclass(frozen=True)
class Variable:
    name: str
    type: VariableType
    states: list[str]
    properties: list[Property]
    span: Span

    @property
    def cardinality(self) -> int:
        if isinstance(self.type, Discrete):
            return self.type.cardinality
        raise TypeError(f"unsupported variable type: {type(self.type).__name__}")

    def state_index(self, label: str) -> int:
        """Position of ``label`` along this variable's table dimension."""
        return self.states.index(label)


# ── Probability tables ───────────────────────────────────────────


@dataclass(frozen=True)
class TableRow:
    parent_states: list[str]  # empty for unconditional tables
    values: list[float]
    span: Span

    @property
    def total(self) -> float:
        return sum(self.values)


@dataclass(frozen=True)
class Probability:
    variable: str
    parents: list[str]
    rows: list[TableRow]
    properties: list[Property]
    span: Span

    @property
    def is_conditional(self) -> bool:
        return bool(self.parents)

    @cached_property
    def _rows_by_states(self) -> dict[tuple[str, ...], TableRow]:
        index: dict[tuple[str, ...], TableRow] = {}
        for row in self.rows:
            index.setdefault(tuple(row.parent_states), row)
        return index

    def row_for(self, *parent_states: str) -> TableRow | None:
        """Find the row describing the given parent-state combination."""
        return self._rows_by_states.get(parent_states)


# ── Document ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Document:
    network: Network
    variables: list[Variable]
    probabilities: list[Probability]
    span: Span

    @property
    def variable_names(self) -> list[str]:
        return [v.name for v in self.variables]

    def get_variable(self, name: str) -> Variable | None:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None

    def get_probability(self, name: str) -> Probability | None:
        """Return the table whose target is ``name``."""
        for prob in self.probabilities:
            if prob.variable == name:
                return prob
        return None


@dataclass
class ParseResult:
    """A validated document plus any advisory diagnostics."""

    document: Document
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]
