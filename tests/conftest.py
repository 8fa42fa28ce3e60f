"""
Pytest configuration and shared fixtures for merklekit tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

from fixtures.common import leaf, make_leaves  # noqa: E402
from merklekit.config.runtime import get_default_engine  # noqa: E402


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def engine():
    """The default hash engine used by trees built without an explicit one."""
    return get_default_engine()


@pytest.fixture
def abcd(engine):
    """Leaf hashes h(a), h(b), h(c), h(d)."""
    return [leaf(label, engine) for label in "abcd"]


@pytest.fixture
def seven_leaves():
    return make_leaves(7)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every MERKLEKIT_* variable from the environment."""
    import os
    for name in list(os.environ):
        if name.startswith("MERKLEKIT_"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
