"""bifparse command-line interface."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from bifparse import __version__
from bifparse.assembler import Assembler
from bifparse.config import BifConfig, find_config, load_config
from bifparse.errors import DiagnosticRenderer, ParseError
from bifparse.model import Document, ParseResult, Probability, Property
from bifparse.source import SourceText


def _config_for(path: Path) -> BifConfig:
    """Config found next to (or above) the document, else defaults."""
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return BifConfig()


def _parse_file(
    path: Path,
    config: BifConfig,
    renderer: DiagnosticRenderer,
    *,
    tolerance: float | None = None,
) -> ParseResult:
    """Read and parse one document, rendering diagnostics. Exits on error."""
    source = SourceText.from_path(path)
    renderer.add_source(source)
    assembler = Assembler(
        tolerance=config.parse.tolerance if tolerance is None else tolerance,
        check_ranges=config.parse.check_ranges,
    )
    try:
        document = assembler.assemble(source.cursor())
    except ParseError as e:
        click.echo(renderer.render(e.diagnostic), err=True)
        raise SystemExit(1)

    for diag in assembler.diagnostics:
        click.echo(renderer.render(diag), err=True)
    return ParseResult(document=document, diagnostics=assembler.diagnostics)


@click.group()
@click.version_option(__version__, prog_name="bifparse")
@click.option("-v", "--verbose", is_flag=True, help="Trace parsing to stderr.")
def main(verbose: bool) -> None:
    """Parse and validate BIF Bayesian-network documents."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s: %(message)s",
        )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--tolerance", type=float, default=None, help="Override row-sum tolerance.")
@click.option("--strict", is_flag=True, help="Treat warnings as errors.")
@click.option("--no-color", is_flag=True, help="Disable colored diagnostics.")
def check(file: str, tolerance: float | None, strict: bool, no_color: bool) -> None:
    """Validate a BIF document."""
    path = Path(file)
    config = _config_for(path)
    renderer = DiagnosticRenderer(color=config.output.color and not no_color)
    result = _parse_file(path, config, renderer, tolerance=tolerance)

    doc = result.document
    warnings = len(result.warnings)
    click.echo(
        f"checked {doc.network.name}: "
        f"{len(doc.variables)} variable(s), "
        f"{len(doc.probabilities)} table(s), "
        f"{warnings} warning(s)"
    )
    if strict and warnings:
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def view(file: str) -> None:
    """Print the parsed document tree."""
    path = Path(file)
    config = _config_for(path)
    renderer = DiagnosticRenderer(color=config.output.color)
    result = _parse_file(path, config, renderer)
    _dump_document(result.document)


def _props(props: list[Property]) -> str:
    return "".join(f" {p.key}={p.value!r}" for p in props)


def _table_lines(prob: Probability) -> list[str]:
    """One line per row: parent states in a padded column, then values."""
    if not prob.is_conditional:
        return ["table  " + ", ".join(f"{v:g}" for v in prob.rows[0].values)]
    labels = ["(" + ", ".join(row.parent_states) + ")" for row in prob.rows]
    width = max(len(label) for label in labels)
    return [
        f"{label:<{width}}  " + ", ".join(f"{v:g}" for v in row.values)
        for label, row in zip(labels, prob.rows)
    ]


def _dump_document(doc: Document) -> None:
    click.echo(f"network {doc.network.name}{_props(doc.network.properties)}")
    for var in doc.variables:
        click.echo(
            f"  variable {var.name} {var.type} "
            f"{{{', '.join(var.states)}}}{_props(var.properties)}"
        )
    for prob in doc.probabilities:
        header = prob.variable
        if prob.is_conditional:
            header += " | " + ", ".join(prob.parents)
        click.echo(f"  probability {header}{_props(prob.properties)}")
        for line in _table_lines(prob):
            click.echo(f"    {line}")
