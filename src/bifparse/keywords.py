"""Reserved words of the BIF interchange format."""

from __future__ import annotations

from enum import Enum


class Keyword(Enum):
    # Declarations
    NETWORK = "network"
    VARIABLE = "variable"
    PROBABILITY = "probability"

    # Clauses
    TYPE = "type"
    TABLE = "table"

    # Variable kinds
    DISCRETE = "discrete"


KEYWORDS: dict[str, Keyword] = {kw.value: kw for kw in Keyword}

# Keywords that may open a declaration after the network block.
DECLARATION_KEYWORDS: frozenset[Keyword] = frozenset({
    Keyword.VARIABLE,
    Keyword.PROBABILITY,
})

# Keywords accepted after ``type`` in a variable block.
TYPE_KEYWORDS: frozenset[Keyword] = frozenset({
    Keyword.DISCRETE,
})
