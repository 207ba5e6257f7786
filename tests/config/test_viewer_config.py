"""
Runtime settings tests — environment loading, validation, singleton.
"""

import pytest
from pydantic import ValidationError

from config import ServiceDefaults, ViewerConfig, debug_config, get_config, reset_config
from config.defaults import MapDefaults, ProjectionDefaults, ViewDefaults


class TestFromEnvironment:

    def test_defaults_without_environment(self, clean_env):
        config = ViewerConfig.from_environment()

        assert config.geocore_url == ServiceDefaults.GEOCORE_URL
        assert config.metadata_timeout_seconds == ServiceDefaults.METADATA_TIMEOUT_SECONDS
        assert config.debug_mode is False
        assert config.log_level == "INFO"

    def test_values_from_environment(self, clean_env):
        clean_env.setenv("GEOCORE_URL", "https://geocore.example/")
        clean_env.setenv("METADATA_TIMEOUT_SECONDS", "12.5")
        clean_env.setenv("DEBUG_MODE", "TRUE")
        clean_env.setenv("LOG_LEVEL", "debug")
        config = ViewerConfig.from_environment()

        assert config.geocore_url == "https://geocore.example"
        assert config.metadata_timeout_seconds == 12.5
        assert config.debug_mode is True
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["0", "-1", "301"])
    def test_timeout_out_of_range(self, clean_env, value):
        clean_env.setenv("METADATA_TIMEOUT_SECONDS", value)
        with pytest.raises(ValidationError):
            ViewerConfig.from_environment()

    def test_settings_are_frozen(self, clean_env):
        config = ViewerConfig.from_environment()
        with pytest.raises(ValidationError):
            config.geocore_url = "https://other.test"


class TestSingleton:

    def test_same_instance_until_reset(self, clean_env):
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first

    def test_debug_config_reflects_singleton(self, clean_env):
        clean_env.setenv("HOVER_DEBOUNCE_MS", "50")
        info = debug_config()

        assert info["hover_debounce_ms"] == 50
        assert info == get_config().model_dump()


class TestDefaultDocument:

    def test_default_document_uses_default_projection(self):
        document = MapDefaults.default_document()
        view = document["map"]["viewSettings"]

        assert view["projection"] == ProjectionDefaults.DEFAULT_PROJECTION
        assert view["center"] == ViewDefaults.MAP_CENTER[ProjectionDefaults.DEFAULT_PROJECTION]

    def test_default_document_is_a_fresh_copy(self):
        document = MapDefaults.default_document()
        document["map"]["viewSettings"]["zoom"] = 99
        assert MapDefaults.default_document()["map"]["viewSettings"]["zoom"] != 99
