"""Parser for BIF Bayesian-network interchange documents."""

import logging

from bifparse.assembler import DEFAULT_TOLERANCE, Assembler, parse
from bifparse.errors import ParseError
from bifparse.model import (
    Discrete,
    Document,
    Network,
    ParseResult,
    Probability,
    Property,
    TableRow,
    Variable,
    VariableType,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "DEFAULT_TOLERANCE",
    "Assembler",
    "Discrete",
    "Document",
    "Network",
    "ParseError",
    "ParseResult",
    "Probability",
    "Property",
    "TableRow",
    "Variable",
    "VariableType",
    "parse",
]
