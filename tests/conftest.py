"""
Pytest configuration and shared fixtures for gcodexform tests.

Provides fresh modal state, a parser, and small helpers for running
programs through a pipeline used across the test suite.
"""

import os
import sys

import pytest

# Add the parent directory to Python path so we can import the package
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from gcodexform.gcode.parser import GcodeParser
from gcodexform.gcode.state import default_state
from gcodexform.pipeline import ErrorPolicy, PipelineConfig, run_pipeline


@pytest.fixture
def state():
    """Machine-default modal state (G21 G90 G91.1 G17 G0 G94 at the origin)."""
    return default_state()


@pytest.fixture
def parser():
    return GcodeParser()


@pytest.fixture
def run_lines():
    """Run lines through the given stages and return the output commands."""

    def _run(lines, *stages, on_error=ErrorPolicy.ABORT_STREAM):
        return run_pipeline(lines, PipelineConfig(stages=list(stages), on_error=on_error))

    return _run


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests that test individual components in isolation")
    config.addinivalue_line("markers", "gcode: Tests specifically for GCODE parsing and transformation functionality")
