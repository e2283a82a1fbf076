# Copyright 2026 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for configuration loading."""

import pytest

from codegraph.config import Settings, load_settings
from codegraph.errors import ConfigError


class TestDefaults:
    """Built-in defaults."""

    def test_defaults(self):
        settings = Settings()
        assert settings.server.host == "127.0.0.1"
        assert settings.server.port == 8080
        assert settings.server.cors_origins == ["*"]
        assert settings.database.path == "codegraph.db"
        assert settings.logging.level == "info"
        assert settings.logging.format == "pretty"
        assert settings.indexing.workers == 1
        assert settings.indexing.parallel_threshold == 50


class TestYamlFile:
    """Loading and saving YAML config files."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "codegraph.yaml"
        path.write_text(
            "server:\n  port: 9000\nlogging:\n  level: DEBUG\n  format: json\n"
            "indexing:\n  exclude_dirs: [vendor]\n"
        )
        settings = Settings.from_file(path)
        assert settings.server.port == 9000
        assert settings.server.host == "127.0.0.1"
        assert settings.logging.level == "debug"
        assert settings.logging.format == "json"
        assert settings.indexing.exclude_dirs == ["vendor"]

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Settings.from_file(path).server.port == 8080

    def test_to_file_round_trip(self, tmp_path):
        settings = Settings()
        settings.database.path = "/var/lib/codegraph.db"
        path = tmp_path / "out" / "config.yaml"

        settings.to_file(path)

        assert Settings.from_file(path).database.path == "/var/lib/codegraph.db"

    @pytest.mark.parametrize(
        "content",
        [
            "logging:\n  level: loud\n",
            "logging:\n  format: xml\n",
            "server:\n  port: 70000\n",
            "- just\n- a list\n",
            "server: [unclosed\n",
        ],
    )
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "bad.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError) as exc_info:
            Settings.from_file(path)
        assert exc_info.value.kind == "config"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            Settings.from_file(tmp_path / "missing.yaml")


class TestEnvironment:
    """Environment variables override file values."""

    def test_env_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("CODEGRAPH_SERVER__PORT", "9100")
        monkeypatch.setenv("CODEGRAPH_DATABASE__PATH", "/tmp/env.db")
        settings = load_settings()
        assert settings.server.port == 9100
        assert settings.database.path == "/tmp/env.db"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "codegraph.yaml"
        path.write_text("server:\n  port: 9000\n  host: 0.0.0.0\n")
        monkeypatch.setenv("CODEGRAPH_SERVER__PORT", "9200")

        settings = load_settings(path)

        assert settings.server.port == 9200
        assert settings.server.host == "0.0.0.0"

    def test_invalid_env(self, monkeypatch):
        monkeypatch.setenv("CODEGRAPH_LOGGING__LEVEL", "chatty")
        with pytest.raises(ConfigError):
            load_settings()
