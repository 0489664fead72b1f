"""Pytest configuration and fixtures."""

import logging
import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for fakes imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop the handler setup_logging installs so it never outlives a test."""
    yield
    from realize import main

    if main._handler is not None:
        logging.getLogger().removeHandler(main._handler)
        main._handler = None
