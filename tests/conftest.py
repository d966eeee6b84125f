"""Pytest configuration for the Lox test suite."""

import sys
from pathlib import Path

import pytest

# Add repo root to path for lox imports
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def lox_script(tmp_path: Path):
    """Write Lox source to a temporary .lox file and return its path."""

    def write(source: str, name: str = "script.lox") -> Path:
        path = tmp_path / name
        path.write_text(source)
        return path

    return write
