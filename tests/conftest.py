"""Root-level pytest configuration and shared fixtures.

This module provides:
- Automatic sys.path configuration for all tests
- A mock engine honouring the ``GoEngine`` protocol
- Helpers feeding request text through a ``GTPSession``
"""
from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest

# ---------------------------------------------------------------------------
# Path Configuration (automatically applied to all tests)
# ---------------------------------------------------------------------------

# Add project root to sys.path so imports work from any test directory
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from api.gtp_interface import GTPSession  # noqa: E402
from core.engine import GoEngine  # noqa: E402


# ---------------------------------------------------------------------------
# Engine Fixtures
# ---------------------------------------------------------------------------

def build_mock_engine(can_score: bool = False) -> MagicMock:
    """Return a ``MagicMock`` engine with harmless defaults.

    ``resize_board`` and ``add_move`` accept everything, the identity is
    ``abc``/``123`` and ``next_move`` passes.
    """
    from core.move import Move

    engine = MagicMock(spec=GoEngine)
    engine.can_score.return_value = can_score
    engine.get_name.return_value = "abc"
    engine.get_version.return_value = "123"
    engine.resize_board.return_value = True
    engine.add_move.return_value = True
    engine.next_move.return_value = Move.PASS
    engine.get_score.return_value = None
    return engine


@pytest.fixture
def engine() -> MagicMock:
    """Mock engine without scoring support."""
    return build_mock_engine()


@pytest.fixture
def scoring_engine() -> MagicMock:
    """Mock engine that reports scoring support."""
    return build_mock_engine(can_score=True)


# ---------------------------------------------------------------------------
# Session Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def run_commands(engine: MagicMock) -> Callable[[str], str]:
    """Return a helper running request text through a fresh session.

    Usage:
        assert run_commands("boardsize 19\\n") == "=\\n\\n"
    """

    def _run(text: str) -> str:
        output = io.StringIO()
        GTPSession(engine).run(io.StringIO(text), output)
        return output.getvalue()

    return _run


# ---------------------------------------------------------------------------
# Pytest Configuration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
