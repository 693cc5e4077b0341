"""Document assembly and cross-declaration validation.

Parsing runs in two stages:

Stage 1: Recognize the network block, then any interleaving of variable
and probability blocks, and require the rest of the input to be empty.
Stage 2: Validate the complete document (unique names, resolved
references, table shape) and collect advisory diagnostics.
"""

from __future__ import annotations

import itertools
import logging

from bifparse.errors import (
    ROW_SUM_DEVIATION,
    VALUE_OUT_OF_RANGE,
    Diagnostic,
    DiagnosticLabel,
    DuplicateProbability,
    DuplicateTableRow,
    DuplicateVariableName,
    IncompleteTable,
    MissingNetworkDeclaration,
    Severity,
    TrailingInput,
    UnknownStateLabel,
    UnresolvedVariableReference,
    ValueCountMismatch,
)
from bifparse.grammar import (
    Logger,
    network_block,
    peek_keyword,
    probability_block,
    variable_block,
)
from bifparse.keywords import DECLARATION_KEYWORDS, Keyword
from bifparse.model import Document, ParseResult, Probability, Variable
from bifparse.scanner import describe, skip_separators
from bifparse.source import Cursor, Span

_logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-6

_DECLARATION_PARSERS = {
    Keyword.VARIABLE: variable_block,
    Keyword.PROBABILITY: probability_block,
}


class Assembler:
    """Builds and validates a single document."""

    def __init__(
        self,
        *,
        tolerance: float = DEFAULT_TOLERANCE,
        check_ranges: bool = True,
        logger: Logger | None = None,
    ) -> None:
        self.tolerance = tolerance
        self.check_ranges = check_ranges
        self.log = logger if logger is not None else _logger
        self.diagnostics: list[Diagnostic] = []

    # ── Public API ──────────────────────────────────────────────

    def assemble(self, cur: Cursor) -> Document:
        """Parse and validate. Raises ParseError; warnings land in self.diagnostics."""
        start = cur
        _, cur = skip_separators(cur)
        if peek_keyword(cur) is not Keyword.NETWORK:
            raise MissingNetworkDeclaration(
                f"document must start with a network declaration, found {describe(cur)}",
                cur.span(),
                expected="'network'",
            )
        network, cur = network_block(cur, self.log)

        variables: list[Variable] = []
        probabilities: list[Probability] = []
        while True:
            _, cur = skip_separators(cur)
            kw = peek_keyword(cur)
            if kw not in DECLARATION_KEYWORDS:
                break
            node, cur = _DECLARATION_PARSERS[kw](cur, self.log)
            if isinstance(node, Variable):
                variables.append(node)
            else:
                probabilities.append(node)

        if not cur.at_end():
            raise TrailingInput(
                f"unexpected {describe(cur)} after the last declaration",
                cur.span(),
                expected="'variable', 'probability' or end of input",
            )

        document = Document(
            network=network,
            variables=variables,
            probabilities=probabilities,
            span=start.span(cur),
        )
        self.log.debug(
            "parsed %d variable(s), %d probability table(s)",
            len(variables), len(probabilities),
        )
        self.validate(document)
        return document

    def validate(self, document: Document) -> None:
        self._check_unique_names(document)
        self._check_references(document)
        index = {v.name: v for v in document.variables}
        for prob in document.probabilities:
            self._check_table(prob, index)
        for prob in document.probabilities:
            self._check_row_sums(prob)

    def has_warnings(self) -> bool:
        return any(d.severity == Severity.WARNING for d in self.diagnostics)

    # ── Stage 2 checks ──────────────────────────────────────────

    def _check_unique_names(self, document: Document) -> None:
        seen: dict[str, Variable] = {}
        for variable in document.variables:
            first = seen.get(variable.name)
            if first is not None:
                raise DuplicateVariableName(
                    f"variable '{variable.name}' is declared more than once",
                    variable.span,
                    notes=[f"first declared at {first.span}"],
                )
            seen[variable.name] = variable

    def _check_references(self, document: Document) -> None:
        names = set(document.variable_names)
        targets: dict[str, Probability] = {}
        for prob in document.probabilities:
            for name in [prob.variable, *prob.parents]:
                if name not in names:
                    raise UnresolvedVariableReference(
                        f"probability table refers to undeclared variable '{name}'",
                        prob.span,
                    )
            first = targets.get(prob.variable)
            if first is not None:
                raise DuplicateProbability(
                    f"variable '{prob.variable}' has more than one probability table",
                    prob.span,
                    notes=[f"first table at {first.span}"],
                )
            targets[prob.variable] = prob

    def _check_table(self, prob: Probability, index: dict[str, Variable]) -> None:
        target = index[prob.variable]
        parents = [index[name] for name in prob.parents]
        labels = [frozenset(p.states) for p in parents]
        seen: dict[tuple[str, ...], Span] = {}

        for row in prob.rows:
            if len(row.values) != target.cardinality:
                raise ValueCountMismatch(
                    f"row of '{prob.variable}' has {len(row.values)} value(s), "
                    f"expected {target.cardinality}",
                    row.span,
                    expected=f"{target.cardinality} value(s)",
                )
            for parent, known, label in zip(parents, labels, row.parent_states):
                if label not in known:
                    raise UnknownStateLabel(
                        f"'{label}' is not a state of '{parent.name}'",
                        row.span,
                        expected="one of " + ", ".join(parent.states),
                    )
            key = tuple(row.parent_states)
            if key in seen:
                raise DuplicateTableRow(
                    f"row ({', '.join(key)}) of '{prob.variable}' appears more than once",
                    row.span,
                    notes=[f"first row at {seen[key]}"],
                )
            seen[key] = row.span

        if not parents:
            return
        missing = [
            combo
            for combo in itertools.product(*(p.states for p in parents))
            if combo not in seen
        ]
        if missing:
            expected = 1
            for parent in parents:
                expected *= parent.cardinality
            raise IncompleteTable(
                f"table of '{prob.variable}' has {len(prob.rows)} row(s), "
                f"expected {expected}",
                prob.span,
                missing,
            )

    def _check_row_sums(self, prob: Probability) -> None:
        for row in prob.rows:
            total = row.total
            if abs(total - 1.0) > self.tolerance:
                self._warn(
                    ROW_SUM_DEVIATION,
                    f"row of '{prob.variable}' sums to {total:g}, not 1",
                    row.span,
                )
            if self.check_ranges and any(v < 0.0 or v > 1.0 for v in row.values):
                self._warn(
                    VALUE_OUT_OF_RANGE,
                    f"row of '{prob.variable}' has a value outside [0, 1]",
                    row.span,
                )

    def _warn(self, code: str, message: str, span: Span) -> None:
        self.log.debug("%s: %s", code, message)
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.WARNING,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span=span, message="")],
            )
        )


def parse(
    text: str,
    filename: str = "<input>",
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    check_ranges: bool = True,
    logger: Logger | None = None,
) -> ParseResult:
    """Parse a complete BIF document.

    Returns the validated document with advisory diagnostics, or raises
    the first :class:`~bifparse.errors.ParseError` encountered.
    """
    assembler = Assembler(tolerance=tolerance, check_ranges=check_ranges, logger=logger)
    document = assembler.assemble(Cursor(text, 0, filename))
    return ParseResult(document=document, diagnostics=assembler.diagnostics)
