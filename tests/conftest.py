"""
Root conftest.py — sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without network access.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables.

    ViewerConfig reads the environment on first use; tests pin the values
    that would otherwise point at real services.
    """
    defaults = {
        "ENVIRONMENT": "dev",
        "GEOCORE_URL": "https://geocore.test",
        "METADATA_TIMEOUT_SECONDS": "5",
        "QUERY_TIMEOUT_SECONDS": "5",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture(autouse=True)
def fresh_config():
    """Drop the configuration singleton around each test."""
    from config import reset_config
    reset_config()
    yield
    reset_config()


@pytest.fixture
def anyio_backend():
    """Async tests run on asyncio only."""
    return "asyncio"
