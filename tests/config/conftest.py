"""
Config test fixtures — clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that ViewerConfig reads, for isolation."""
    env_vars_to_clear = [
        "DEBUG_MODE", "ENVIRONMENT", "LOG_LEVEL",
        "GEOCORE_URL", "METADATA_TIMEOUT_SECONDS", "QUERY_TIMEOUT_SECONDS",
        "HOVER_DEBOUNCE_MS",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
