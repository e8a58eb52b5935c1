"""Unit tests for codebox/settings.py."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from codebox.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)  # no .env file
        settings = Settings()
        assert settings.sandbox_image == "codebox-sandbox:latest"
        assert settings.sandbox_runtime == "docker"
        assert settings.sandbox_max_output_bytes == 512 * 1024
        assert settings.sandbox_policy_file == "sandbox.policy.yaml"
        assert settings.sandbox_summary_max_chars == 2000
        assert settings.sandbox_workspace_root is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SANDBOX_RUNTIME", "podman")
        monkeypatch.setenv("SANDBOX_MAX_OUTPUT_BYTES", "4096")
        monkeypatch.setenv("SANDBOX_WORKSPACE_ROOT", "/srv/workspace")
        settings = Settings()
        assert settings.sandbox_runtime == "podman"
        assert settings.sandbox_max_output_bytes == 4096
        assert settings.sandbox_workspace_root == Path("/srv/workspace")

    def test_env_file(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("SANDBOX_IMAGE=from-dotenv:2\n")
        assert Settings().sandbox_image == "from-dotenv:2"

    def test_negative_output_limit_rejected(self, monkeypatch):
        monkeypatch.setenv("SANDBOX_MAX_OUTPUT_BYTES", "-1")
        with pytest.raises(ValidationError):
            Settings()


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_reloads(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("SANDBOX_IMAGE", "reloaded:1")
        get_settings.cache_clear()
        assert get_settings() is not first
        assert get_settings().sandbox_image == "reloaded:1"
