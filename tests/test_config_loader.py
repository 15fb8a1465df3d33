"""Tests for the config loader module."""

import os

import pytest
import yaml

from dify2openai.config_loader import _substitute_env_vars, load_config, load_env_values
from dify2openai.core.exceptions import ConfigurationError


class TestLoadConfig:
    """Tests for loading configuration from YAML files."""

    def test_loads_simple_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"upstream": {"bot_type": "Chat"}}), encoding="utf-8")

        assert load_config(str(path)) == {"upstream": {"bot_type": "Chat"}}

    def test_missing_default_config_is_empty(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DIFY2OPENAI_CONFIG", raising=False)
        assert load_config() == {}

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("model_name: custom\n", encoding="utf-8")
        monkeypatch.setenv("DIFY2OPENAI_CONFIG", str(path))

        assert load_config() == {"model_name": "custom"}

    def test_raises_error_for_missing_explicit_config(self):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config("/nonexistent/path/config.yaml")

    def test_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_config(str(path))

    def test_env_values_take_priority_over_process_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIFY_TEST_KEY", "from-process")
        path = tmp_path / "config.yaml"
        path.write_text("upstream:\n  api_url: ${DIFY_TEST_KEY}\n", encoding="utf-8")

        assert load_config(str(path))["upstream"]["api_url"] == "from-process"
        assert load_config(str(path), env_values={"DIFY_TEST_KEY": "from-dotenv"})["upstream"]["api_url"] == "from-dotenv"

    def test_substitution_can_be_disabled(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIFY_TEST_KEY", "value")
        path = tmp_path / "config.yaml"
        path.write_text("key: ${DIFY_TEST_KEY}\n", encoding="utf-8")

        assert load_config(str(path), substitute_env=False) == {"key": "${DIFY_TEST_KEY}"}


class TestSubstituteEnvVars:
    def test_braced_and_simple_syntax(self, monkeypatch):
        monkeypatch.setenv("DIFY_HOST", "dify.local")
        result = _substitute_env_vars({"a": "http://${DIFY_HOST}/v1", "b": ["$DIFY_HOST"]})
        assert result == {"a": "http://dify.local/v1", "b": ["dify.local"]}

    def test_unset_variable_keeps_placeholder(self, monkeypatch):
        monkeypatch.delenv("DIFY_NOT_SET", raising=False)
        assert _substitute_env_vars("${DIFY_NOT_SET}") == "${DIFY_NOT_SET}"

    def test_non_strings_are_untouched(self):
        assert _substitute_env_vars({"port": 3012, "flag": True, "none": None}) == {
            "port": 3012,
            "flag": True,
            "none": None,
        }


def test_load_env_values_reads_dotenv_without_touching_environ(tmp_path):
    env_path = tmp_path / ".env"
    env_path.write_text("DIFY_ONLY_IN_FILE=yes\nEMPTY\n", encoding="utf-8")

    assert load_env_values(str(env_path)) == {"DIFY_ONLY_IN_FILE": "yes"}
    assert "DIFY_ONLY_IN_FILE" not in os.environ


def test_load_env_values_missing_file(tmp_path):
    assert load_env_values(str(tmp_path / ".env")) == {}
