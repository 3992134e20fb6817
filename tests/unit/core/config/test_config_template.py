"""Unit tests for config_template module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from src.library.runtime.config.config_data import ConfigData
from src.library.runtime.config.config_template import (
    apply_environment_overrides,
    load_config,
    load_templated_yaml,
    substitute_env_vars,
)


class TestSubstituteEnvVars:
    """Test cases for substitute_env_vars function."""

    def test_substitute_simple_env_var(self):
        with patch.dict(os.environ, {"TEST_VAR": "test_value"}):
            assert substitute_env_vars("${TEST_VAR}") == "test_value"

    def test_substitute_env_var_with_default(self):
        with patch.dict(os.environ, {}, clear=True):
            assert substitute_env_vars("${MISSING_VAR:-fallback}") == "fallback"

    def test_substitute_env_var_with_default_when_set(self):
        with patch.dict(os.environ, {"PRESENT_VAR": "actual"}):
            assert substitute_env_vars("${PRESENT_VAR:-fallback}") == "actual"

    def test_missing_required_var(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="MISSING_VAR"):
                substitute_env_vars("${MISSING_VAR}")

    def test_missing_required_var_with_message(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="set me please"):
                substitute_env_vars("${MISSING_VAR:?set me please}")


class TestEnvironmentOverrides:
    def test_prefixed_vars_are_promoted(self):
        with patch.dict(os.environ, {"PRODUCTION_DATABASE_URL": "postgresql://db"}):
            apply_environment_overrides("production")

            assert os.environ["DATABASE_URL"] == "postgresql://db"


class TestLoadConfig:
    def test_load_templated_yaml(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "config:\n"
            "  app:\n"
            "    environment: test\n"
            "  lending:\n"
            "    default_loan_days: ${LOAN_DAYS:-7}\n"
            "  catalog:\n"
            "    default_page_size: 25\n"
        )

        with patch.dict(os.environ, {}, clear=True):
            config = load_templated_yaml(config_file)

        assert config.lending.default_loan_days == 7
        assert config.catalog.default_page_size == 25
        assert config.security.cookie_name == "token"

    def test_invalid_values_raise(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("config:\n  lending:\n    default_loan_days: 0\n")

        with pytest.raises(ValueError):
            load_templated_yaml(config_file)

    def test_missing_file_falls_back_to_defaults(self, tmp_path: Path):
        config = load_config(tmp_path / "absent.yaml")

        assert config == ConfigData()

    def test_repository_config_loads(self):
        config = load_config(Path(__file__).parents[4] / "config.yaml")

        assert config.app.port > 0
        assert config.uploads.url_prefix == "/uploads"

    def test_repository_config_accepts_urls_with_colons(self):
        env = {"DATABASE_URL": "sqlite:///:memory:", "CORS_ORIGIN": "http://a.test:8080"}
        with patch.dict(os.environ, env):
            config = load_templated_yaml(Path(__file__).parents[4] / "config.yaml")

        assert config.database.url == "sqlite:///:memory:"
        assert config.app.cors.origins == ["http://a.test:8080"]
