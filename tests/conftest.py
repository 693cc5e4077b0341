"""Shared pytest fixtures for the bifparse test suite."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from tests.helpers import STUDENT_BIF


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def student_file(tmp_path):
    """The student network written to a temp dir."""
    path = tmp_path / "student.bif"
    path.write_text(STUDENT_BIF)
    return path
