"""Unit tests for tasktrack.engine.config — YAML loading, env overrides, required settings."""

import pytest

from tasktrack.engine.config import (
    ServerConfig,
    TaskTrackConfig,
    load_config,
)
from tasktrack.engine.errors import ConfigError

FULL_ENV = {"JWT_SECRET": "s3cret", "DATABASE_URL": "sqlite:///:memory:"}


class TestDefaults:

    def test_defaults(self):
        config = TaskTrackConfig()
        assert config.environment == "dev"
        assert config.security.jwt_algorithm == "HS256"
        assert config.security.password_min_length == 6
        assert config.server.api_prefix == "/api"
        assert config.server.port == 5000

    def test_invalid_environment(self):
        with pytest.raises(Exception):
            TaskTrackConfig(environment="qa")

    @pytest.mark.parametrize("raw,expected", [
        ("/api", "/api"),
        ("api/", "/api"),
        ("/v1/api/", "/v1/api"),
        ("/", ""),
        ("", ""),
    ])
    def test_api_prefix_normalized(self, raw, expected):
        assert ServerConfig(api_prefix=raw).api_prefix == expected


class TestLoadConfig:

    def test_env_only(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config(env=FULL_ENV)
        assert config.security.jwt_secret == "s3cret"
        assert config.database.url == "sqlite:///:memory:"

    def test_missing_secret_is_fatal(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError) as exc:
            load_config(env={"DATABASE_URL": "sqlite:///:memory:"})
        assert "jwt_secret" in exc.value.message

    def test_missing_database_url_is_fatal(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError) as exc:
            load_config(env={"JWT_SECRET": "x"})
        assert "database.url" in exc.value.message

    def test_require_false_allows_incomplete(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config(env={}, require=False)
        assert config.security.jwt_secret == ""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "tasktrack.yaml"
        path.write_text(
            "name: Tracker\n"
            "environment: staging\n"
            "database:\n"
            "  url: postgresql://u:p@localhost/tt\n"
            "security:\n"
            "  jwt_secret: from-file\n"
            "server:\n"
            "  api_prefix: /v2\n",
            encoding="utf-8",
        )
        config = load_config(str(path), env={})
        assert config.name == "Tracker"
        assert config.environment == "staging"
        assert config.security.jwt_secret == "from-file"
        assert config.server.api_prefix == "/v2"

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "tasktrack.yaml"
        path.write_text(
            "database:\n  url: sqlite:///file.db\nsecurity:\n  jwt_secret: from-file\n",
            encoding="utf-8",
        )
        config = load_config(
            str(path),
            env={"TASKTRACK_JWT_SECRET": "prefixed", "JWT_SECRET": "plain", "PORT": "8080"},
        )
        assert config.security.jwt_secret == "prefixed"
        assert config.database.url == "sqlite:///file.db"
        assert config.server.port == 8080

    def test_tasktrack_env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config(env={**FULL_ENV, "TASKTRACK_ENV": "prod"})
        assert config.environment == "prod"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "nope.yaml"), env=FULL_ENV)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "tasktrack.yaml"
        path.write_text("database: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path), env=FULL_ENV)

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "tasktrack.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path), env=FULL_ENV)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "tasktrack.yaml"
        path.write_text("security:\n  jwt_algorithm: RS256\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path), env=FULL_ENV)
