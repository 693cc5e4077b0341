"""TOML config loading for bifparse.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from bifparse.assembler import DEFAULT_TOLERANCE

CONFIG_NAME = "bifparse.toml"


@dataclass
class ParseConfig:
    tolerance: float = DEFAULT_TOLERANCE
    check_ranges: bool = True


@dataclass
class OutputConfig:
    color: bool = True


@dataclass
class BifConfig:
    parse: ParseConfig = field(default_factory=ParseConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find bifparse.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> BifConfig:
    """Parse a bifparse.toml file into a BifConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = BifConfig()

    if "parse" in data:
        prs = data["parse"]
        config.parse = ParseConfig(
            tolerance=float(prs.get("tolerance", DEFAULT_TOLERANCE)),
            check_ranges=prs.get("check_ranges", True),
        )

    if "output" in data:
        out = data["output"]
        config.output = OutputConfig(
            color=out.get("color", True),
        )

    return config
