"""
Root conftest to ensure proper import paths.

This file exists at the project root so the project directory is on
sys.path before pytest starts collecting tests, and so the stubkit
fixtures are available to every test module.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Ensure project root is in Python path
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

pytest_plugins = ["stubkit.pytest_plugin"]


@pytest.fixture
def mock_logger():
    """Create a mock structlog-style logger.

    The logger supports:
    - bind(**kwargs) -> logger (returns itself with context)
    - debug/info/warning/error/critical methods
    """
    logger = MagicMock()
    logger.bind.return_value = logger
    return logger
