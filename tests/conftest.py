from __future__ import annotations

import sys
from pathlib import Path

# Allow importing the package when running plain `pytest` without an editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))

import pytest

from pystep import Interpreter


@pytest.fixture
def run_program():
    def _run(source: str, **options) -> Interpreter:
        interpreter = Interpreter(**options)
        assert interpreter.compile(source, filename="<test>"), interpreter.parse_error
        interpreter.to_end()
        return interpreter

    return _run


@pytest.fixture
def compiled():
    def _compile(source: str, **options) -> Interpreter:
        interpreter = Interpreter(**options)
        assert interpreter.compile(source, filename="<test>"), interpreter.parse_error
        return interpreter

    return _compile
