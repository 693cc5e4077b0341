"""Tests for document assembly and cross-declaration validation."""

from __future__ import annotations

import logging
import threading
import time

import pytest

from bifparse import parse
from bifparse import source as source_module
from bifparse.assembler import Assembler
from bifparse.errors import (
    ROW_SUM_DEVIATION,
    VALUE_OUT_OF_RANGE,
    BifSyntaxError,
    DuplicateProbability,
    DuplicateTableRow,
    DuplicateVariableName,
    IncompleteTable,
    InvalidNumber,
    MissingNetworkDeclaration,
    Severity,
    StateCountMismatch,
    TrailingInput,
    UnknownStateLabel,
    UnresolvedVariableReference,
    ValidationError,
    ValueCountMismatch,
)
from bifparse.source import SourceText
from tests.helpers import STUDENT_BIF, coins, cursor, parse_fails, parse_ok


class TestStudentNetwork:
    def test_parses(self):
        doc = parse_ok(STUDENT_BIF)
        assert doc.network.name == "unknown"
        assert len(doc.variables) == 5
        assert len(doc.probabilities) == 5
        assert doc.variable_names == ["Difficulty", "Intelligence", "Grade", "Letter", "SAT"]

    def test_grade_rows(self):
        doc = parse_ok(STUDENT_BIF)
        grade = doc.get_probability("Grade")
        assert grade is not None
        assert len(grade.rows) == 4
        assert {tuple(r.parent_states) for r in grade.rows} == {
            ("i0", "d0"), ("i0", "d1"), ("i1", "d0"), ("i1", "d1"),
        }
        assert all(len(r.values) == 3 for r in grade.rows)

    def test_every_row_sums_to_one(self):
        doc = parse_ok(STUDENT_BIF)
        for prob in doc.probabilities:
            for row in prob.rows:
                assert row.total == pytest.approx(1.0, abs=1e-6)

    def test_unconditional_tables(self):
        doc = parse_ok(STUDENT_BIF)
        difficulty = doc.get_probability("Difficulty")
        assert not difficulty.is_conditional
        assert len(difficulty.rows) == 1
        assert difficulty.rows[0].values == [0.6, 0.4]

    def test_row_lookup(self):
        doc = parse_ok(STUDENT_BIF)
        letter = doc.get_probability("Letter")
        assert letter.row_for("g2").values == [0.99, 0.01]
        assert letter.row_for("g9") is None

    def test_row_lookup_by_parent_combination(self):
        doc = parse_ok(STUDENT_BIF)
        grade = doc.get_probability("Grade")
        assert grade.row_for("i1", "d0").values == [0.90, 0.08, 0.02]
        assert grade.row_for("d0", "i1") is None
        assert grade.row_for("i1") is None
        assert doc.get_probability("SAT").row_for() is None
        assert doc.get_probability("Difficulty").row_for().values == [0.6, 0.4]

    def test_row_counts_match_parent_cardinalities(self):
        doc = parse_ok(STUDENT_BIF)
        for prob in doc.probabilities:
            expected = 1
            for parent in prob.parents:
                expected *= doc.get_variable(parent).cardinality
            assert len(prob.rows) == expected

    def test_removing_a_row_is_incomplete(self):
        source = STUDENT_BIF.replace("  (i1, d1) 0.50, 0.30, 0.20;\n", "")
        err = parse_fails(source, IncompleteTable)
        assert err.missing == [("i1", "d1")]
        assert any("(i1, d1)" in n for n in err.notes)

    def test_wrong_cardinality_is_state_count_mismatch(self):
        source = STUDENT_BIF.replace(
            "type discrete [ 2 ] { d0, d1 }", "type discrete [ 3 ] { d0, d1 }",
        )
        err = parse_fails(source, StateCountMismatch)
        assert err.variable == "Difficulty"
        assert (err.expected, err.actual) == (3, 2)


class TestDocumentStructure:
    def test_network_only(self):
        doc = parse_ok("network empty {\n}\n")
        assert doc.variables == []
        assert doc.probabilities == []

    def test_leading_whitespace_and_comments(self):
        doc = parse_ok("// exported\n\n  network n { }")
        assert doc.network.name == "n"

    def test_probability_before_variable(self):
        source = (
            "network n { }\n"
            "probability ( A ) { table 0.5, 0.5; }\n"
            "variable A { type discrete [2] { a0, a1 }; }\n"
        )
        doc = parse_ok(source)
        assert doc.get_probability("A").variable == "A"
        assert doc.get_variable("A").states == ["a0", "a1"]

    def test_interleaved_declarations_keep_order(self):
        source = coins(
            "probability ( B | A ) { (a0) 0.5, 0.5; (a1) 0.1, 0.9; }",
            "variable C { type discrete [1] { c }; }",
            "probability ( A ) { table 0.3, 0.7; }",
            "probability ( C ) { table 1; }",
        )
        doc = parse_ok(source)
        assert doc.variable_names == ["A", "B", "C"]
        assert [p.variable for p in doc.probabilities] == ["B", "A", "C"]

    def test_missing_network(self):
        parse_fails("variable A { type discrete [1] { a }; }", MissingNetworkDeclaration)

    def test_empty_document(self):
        parse_fails("   \n", MissingNetworkDeclaration)

    def test_malformed_network_is_syntax_error(self):
        parse_fails("network { }", BifSyntaxError)

    def test_trailing_input(self):
        source = coins("probability ( A ) { table 0.5, 0.5; }") + "\ngarbage here\n"
        err = parse_fails(source, TrailingInput)
        assert err.offset == source.index("garbage")
        assert err.span.start_line == source[: err.offset].count("\n") + 1
        assert err.span.start_col == 1

    def test_second_network_is_trailing(self):
        parse_fails("network a { }\nnetwork b { }", TrailingInput)

    def test_misspelled_keyword_is_trailing(self):
        parse_fails("network a { }\nvariabel X { }", TrailingInput)

    def test_trailing_comment_allowed(self):
        parse_ok("network a { }\n// the end")

    def test_non_ascii_cardinality_is_invalid_number(self):
        parse_fails(
            "network n { }\nvariable A { type discrete [ ² ] { a, b }; }", InvalidNumber,
        )

    def test_non_ascii_table_value_is_invalid_number(self):
        parse_fails(coins("probability ( A ) { table ²; }"), InvalidNumber)

    def test_offset_counts_characters(self):
        source = 'network n { note "café ☕"; }\ngarbage'
        err = parse_fails(source, TrailingInput)
        assert err.offset == source.index("garbage")
        assert SourceText(source).byte_offset(err.span) == len(
            source[: err.offset].encode("utf-8")
        )


class TestValidation:
    def test_duplicate_variable(self):
        source = coins("variable A { type discrete [1] { x }; }")
        err = parse_fails(source, DuplicateVariableName)
        assert "first declared at" in err.notes[0]

    def test_unresolved_target(self):
        parse_fails(coins("probability ( Z ) { table 1; }"), UnresolvedVariableReference)

    def test_unresolved_parent(self):
        source = coins("probability ( A | Z ) { (z0) 0.5, 0.5; }")
        err = parse_fails(source, UnresolvedVariableReference)
        assert "'Z'" in err.message

    def test_duplicate_probability(self):
        source = coins(
            "probability ( A ) { table 0.5, 0.5; }",
            "probability ( A ) { table 0.2, 0.8; }",
        )
        parse_fails(source, DuplicateProbability)

    def test_unconditional_value_count(self):
        err = parse_fails(coins("probability ( A ) { table 0.2, 0.3, 0.5; }"), ValueCountMismatch)
        assert err.expected == "2 value(s)"

    def test_conditional_value_count(self):
        source = coins("probability ( B | A ) { (a0) 0.5, 0.5; (a1) 1.0; }")
        err = parse_fails(source, ValueCountMismatch)
        assert err.span.start_col > 1

    def test_duplicate_row(self):
        source = coins("probability ( B | A ) { (a0) 0.5, 0.5; (a0) 0.1, 0.9; }")
        err = parse_fails(source, DuplicateTableRow)
        assert "(a0)" in err.message

    def test_unknown_state_label(self):
        source = coins("probability ( B | A ) { (a0) 0.5, 0.5; (a2) 0.1, 0.9; }")
        err = parse_fails(source, UnknownStateLabel)
        assert "'a2'" in err.message

    def test_labels_are_case_sensitive(self):
        source = coins("probability ( B | A ) { (a0) 0.5, 0.5; (A1) 0.1, 0.9; }")
        parse_fails(source, UnknownStateLabel)

    def test_labels_checked_in_header_order(self):
        source = coins(
            "variable C { type discrete [2] { c0, c1 }; }",
            "probability ( C | A, B ) {",
            "  (a0, b0) 0.5, 0.5; (a0, b1) 0.5, 0.5;",
            "  (a1, b0) 0.5, 0.5; (b1, a1) 0.5, 0.5;",
            "}",
        )
        parse_fails(source, UnknownStateLabel)

    def test_incomplete_lists_every_missing_row(self):
        source = coins(
            "variable C { type discrete [2] { c0, c1 }; }",
            "probability ( C | A, B ) { (a1, b0) 0.5, 0.5; }",
        )
        err = parse_fails(source, IncompleteTable)
        assert err.missing == [("a0", "b0"), ("a0", "b1"), ("a1", "b1")]
        assert "expected 4" in err.message

    def test_validation_errors_share_a_family(self):
        err = parse_fails(coins("probability ( Z ) { table 1; }"), ValidationError)
        assert err.diagnostic.code == "E204"
        assert err.diagnostic.severity == Severity.ERROR


class TestAdvisoryDiagnostics:
    def test_row_sum_deviation_is_a_warning(self):
        result = parse(coins("probability ( A ) { table 0.5, 0.4; }"))
        assert result.document.get_probability("A") is not None
        assert [d.code for d in result.warnings] == [ROW_SUM_DEVIATION]
        assert "0.9" in result.warnings[0].message

    def test_tolerance(self):
        source = coins("probability ( A ) { table 0.5, 0.4999; }")
        assert parse(source).warnings
        assert not parse(source, tolerance=1e-3).warnings

    def test_value_out_of_range(self):
        result = parse(coins("probability ( A ) { table 1.2, -0.2; }"))
        assert [d.code for d in result.warnings] == [VALUE_OUT_OF_RANGE]

    def test_range_check_can_be_disabled(self):
        result = parse(coins("probability ( A ) { table 1.2, -0.2; }"), check_ranges=False)
        assert result.diagnostics == []

    def test_each_bad_row_reported(self):
        source = coins("probability ( B | A ) { (a0) 0.5, 0.6; (a1) 0.1, 0.1; }")
        result = parse(source)
        assert len(result.warnings) == 2
        assert result.warnings[1].span.start_col > result.warnings[0].span.start_col

    def test_assembler_collects_warnings(self):
        assembler = Assembler()
        assembler.assemble(cursor(coins("probability ( A ) { table 0.1, 0.1; }")))
        assert assembler.has_warnings()


class TestTracing:
    def test_silent_by_default(self, capsys):
        parse(STUDENT_BIF)
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_injected_logger_receives_trace(self, caplog):
        log = logging.getLogger("tests.bif")
        with caplog.at_level(logging.DEBUG, logger="tests.bif"):
            parse(STUDENT_BIF, logger=log)
        messages = [r.getMessage() for r in caplog.records if r.name == "tests.bif"]
        assert any(m.startswith("network unknown") for m in messages)
        assert any("probability Grade | Intelligence, Difficulty" in m for m in messages)
        assert any("5 variable(s), 5 probability table(s)" in m for m in messages)

    def test_parallel_parses_are_independent(self):
        results = {}

        def worker(i):
            results[i] = parse(STUDENT_BIF, f"doc{i}.bif").document

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(results) == [0, 1, 2, 3]
        assert results[2].network.span.file == "doc2.bif"
        assert all(len(d.variables) == 5 for d in results.values())


class TestScaling:
    def _pairs(self, n: int) -> str:
        parts = ["network big { }"]
        for i in range(n):
            parts.append(f"variable V{i} {{\n  type discrete [2] {{ a, b }};\n}}")
            parts.append(f"probability ( V{i} ) {{\n  table 0.25, 0.75;\n}}")
        return "\n".join(parts) + "\n"

    def _best_time(self, text: str) -> float:
        best = float("inf")
        for _ in range(3):
            start = time.perf_counter()
            parse(text)
            best = min(best, time.perf_counter() - start)
        return best

    def test_line_table_built_once_per_parse(self, monkeypatch):
        calls = []
        original = source_module.line_starts

        def counting(text):
            calls.append(len(text))
            return original(text)

        monkeypatch.setattr(source_module, "line_starts", counting)
        parse(self._pairs(50))
        assert len(calls) == 1

    def test_parse_time_grows_linearly(self):
        small = self._best_time(self._pairs(1000))
        large = self._best_time(self._pairs(4000))
        # Four times the input; a quadratic parser would take ~16x as long.
        assert large < small * 10
