"""Tests for settings and collection paths."""

import pytest

from recital_sync.config import (
    COLLECTIONS,
    DEFAULT_APP_ID,
    ENV_APP_ID,
    ENV_AUTH_TOKEN,
    ENV_BACKEND_CONFIG,
    ENV_LOG_LEVEL,
    Settings,
    collection_path,
)
from recital_sync.errors import ConfigError


class TestCollectionPath:
    """Namespace-scoped collection paths."""

    @pytest.mark.parametrize("name", COLLECTIONS)
    def test_path_layout(self, name):
        assert collection_path("my-site", name) == f"artifacts/my-site/public/data/{name}"

    def test_unknown_collection_rejected(self):
        with pytest.raises(ValueError, match="Unknown collection"):
            collection_path("my-site", "users")

    def test_namespaces_do_not_share_paths(self):
        assert collection_path("a", "stories") != collection_path("b", "stories")


class TestSettingsFromEnv:
    """Settings.from_env parsing."""

    def test_defaults_when_environment_is_empty(self):
        settings = Settings.from_env({})

        assert settings.app_id == DEFAULT_APP_ID
        assert settings.auth_token is None
        assert settings.backend_name == "memory"
        assert settings.log_level == "INFO"

    def test_reads_every_variable(self):
        settings = Settings.from_env({
            ENV_BACKEND_CONFIG: '{"backend": "postgres", "dsn": "postgresql://db/recital"}',
            ENV_APP_ID: "recital-2026",
            ENV_AUTH_TOKEN: "secret",
            ENV_LOG_LEVEL: "debug",
        })

        assert settings.backend_name == "postgres"
        assert settings.backend_config["dsn"] == "postgresql://db/recital"
        assert settings.app_id == "recital-2026"
        assert settings.auth_token == "secret"
        assert settings.log_level == "DEBUG"

    def test_empty_values_fall_back_to_defaults(self):
        settings = Settings.from_env({ENV_APP_ID: "", ENV_AUTH_TOKEN: ""})

        assert settings.app_id == DEFAULT_APP_ID
        assert settings.auth_token is None

    def test_invalid_json_raises_config_error(self):
        with pytest.raises(ConfigError, match="not valid JSON"):
            Settings.from_env({ENV_BACKEND_CONFIG: "{backend: memory"})

    def test_non_object_json_raises_config_error(self):
        with pytest.raises(ConfigError, match="JSON object"):
            Settings.from_env({ENV_BACKEND_CONFIG: '["memory"]'})

    def test_reads_os_environ_without_mapping(self, monkeypatch):
        monkeypatch.setenv(ENV_APP_ID, "from-os-environ")

        settings = Settings.from_env(dotenv=False)

        assert settings.app_id == "from-os-environ"

    def test_path_for_uses_app_id(self):
        settings = Settings(app_id="site")

        assert settings.path_for("feedback") == "artifacts/site/public/data/feedback"
