"""Unit tests for configuration loading and validation."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from toolmesh.config import ConfigLoader, ServerDefinition, resolve_env_vars
from toolmesh.errors import ToolmeshError
from toolmesh.types import BackoffType, LogFormat, LogLevel

SAMPLE_CONFIG = """
servers:
  - name: chain
    url: http://localhost:9001/mcp
    description: Blockchain tools
  - name: files
    url: https://files.example.com/sse

connection:
  call_timeout_ms: 5000
  tool_retry:
    max_attempts: 2
    backoff: exponential
    delay_seconds: 0.5

chat:
  default_model: anthropic/claude-3.5-sonnet
  max_tool_rounds: 3
  system_prompt: You are helpful.

llm:
  api_key: ${TEST_TOOLMESH_KEY:-sk-default}

logging:
  level: DEBUG
  format: json
  components:
    gateway: false
"""


class TestConfigLoader:
    """Tests for ConfigLoader.load and friends."""

    def test_defaults_without_file(self, tmp_path: Path):
        config = ConfigLoader().load(tmp_path / "missing.yaml")
        assert config.servers == []
        assert config.connection.call_timeout_ms == 30_000
        assert config.connection.tool_retry.max_attempts == 3
        assert config.connection.catalog_retry.backoff == BackoffType.EXPONENTIAL
        assert config.chat.max_tool_rounds == 5
        assert config.chat.tool_choice == "auto"

    def test_missing_file_without_defaults_raises(self, tmp_path: Path):
        with pytest.raises(ToolmeshError) as exc_info:
            ConfigLoader().load(tmp_path / "missing.yaml", use_defaults=False)
        assert exc_info.value.code == "CONFIG_INVALID"

    def test_load_yaml_file(self, tmp_path: Path):
        path = tmp_path / "toolmesh.yaml"
        path.write_text(SAMPLE_CONFIG)

        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("TEST_TOOLMESH_KEY", None)
            loader = ConfigLoader()
            config = loader.load(path)

        assert loader.config_path == path
        assert config.servers[0] == ServerDefinition(
            name="chain", url="http://localhost:9001/mcp", description="Blockchain tools"
        )
        assert config.servers[1].description is None
        assert config.connection.call_timeout_ms == 5000
        assert config.connection.connection_timeout_ms == 30_000
        assert config.connection.tool_retry.backoff == BackoffType.EXPONENTIAL
        assert config.connection.tool_retry.delay_seconds == 0.5
        assert config.chat.max_tool_rounds == 3
        assert config.llm.api_key == "sk-default"
        assert config.logging.level == LogLevel.DEBUG
        assert config.logging.format == LogFormat.JSON
        assert config.logging.components.gateway is False
        assert config.logging.components.chat is True

    def test_env_var_overrides_default(self, tmp_path: Path):
        path = tmp_path / "toolmesh.yaml"
        path.write_text(SAMPLE_CONFIG)
        with patch.dict(os.environ, {"TEST_TOOLMESH_KEY": "sk-real"}):
            config = ConfigLoader().load(path)
        assert config.llm.api_key == "sk-real"

    def test_config_path_from_env(self, tmp_path: Path):
        path = tmp_path / "custom.yaml"
        path.write_text("chat:\n  max_tool_rounds: 2\n")
        with patch.dict(os.environ, {"TOOLMESH_CONFIG_PATH": str(path)}):
            config = ConfigLoader().load()
        assert config.chat.max_tool_rounds == 2

    def test_invalid_yaml_raises(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("servers: [unclosed")
        with pytest.raises(ToolmeshError, match="Invalid configuration"):
            ConfigLoader().load(path)

    def test_get_before_load_raises(self):
        with pytest.raises(ToolmeshError):
            ConfigLoader().get()


class TestConfigValidation:
    """Tests for ConfigLoader.validate."""

    def _paths(self, data: dict) -> list[str]:
        return [issue.path for issue in ConfigLoader().validate(data).errors]

    def test_valid_config(self):
        result = ConfigLoader().validate({"servers": [{"name": "a", "url": "http://a"}]})
        assert result.valid

    def test_duplicate_server_names(self):
        servers = [{"name": "a", "url": "http://a"}, {"name": "a", "url": "http://b"}]
        assert self._paths({"servers": servers}) == ["servers[1].name"]

    @pytest.mark.parametrize("name", ["a__b", "chain_", "_chain"])
    def test_server_name_must_be_a_valid_segment(self, name):
        assert self._paths({"servers": [{"name": name, "url": "http://a"}]}) == [
            "servers[0].name"
        ]

    def test_server_url_must_be_http(self):
        assert self._paths({"servers": [{"name": "a", "url": "ftp://a"}]}) == ["servers[0].url"]

    def test_servers_must_be_list(self):
        assert self._paths({"servers": {"a": "http://a"}}) == ["servers"]

    @pytest.mark.parametrize("value", [0, -1, "5", True])
    def test_max_tool_rounds_must_be_positive_int(self, value):
        assert self._paths({"chat": {"max_tool_rounds": value}}) == ["chat.max_tool_rounds"]

    def test_timeouts_must_be_positive(self):
        paths = self._paths({"connection": {"call_timeout_ms": 0, "connection_timeout_ms": -5}})
        assert sorted(paths) == ["connection.call_timeout_ms", "connection.connection_timeout_ms"]

    def test_retry_attempts_must_be_at_least_one(self):
        data = {"connection": {"tool_retry": {"max_attempts": 0}}}
        assert self._paths(data) == ["connection.tool_retry.max_attempts"]

    def test_unknown_keys_and_missing_api_key_are_warnings(self):
        result = ConfigLoader().validate({"workflows": {}, "llm": {}})
        assert result.valid
        assert {w.path for w in result.warnings} == {"workflows", "llm.api_key"}

    def test_load_from_dict_raises_with_all_errors(self):
        data = {"servers": [{"name": "", "url": "nope"}]}
        with pytest.raises(ToolmeshError) as exc_info:
            ConfigLoader().load_from_dict(data)
        assert "servers[0].name" in exc_info.value.detail
        assert "servers[0].url" in exc_info.value.detail


class TestResolveEnvVars:
    """Tests for ${VAR} resolution."""

    def test_required_var_missing_raises(self):
        os.environ.pop("TOOLMESH_TEST_MISSING", None)
        with pytest.raises(ToolmeshError):
            resolve_env_vars("${TOOLMESH_TEST_MISSING}")

    def test_custom_error_message(self):
        os.environ.pop("TOOLMESH_TEST_MISSING", None)
        with pytest.raises(ToolmeshError) as exc_info:
            resolve_env_vars("${TOOLMESH_TEST_MISSING:?set the key}")
        assert exc_info.value.detail == "set the key"

    def test_embedded_reference(self):
        with patch.dict(os.environ, {"TOOLMESH_TEST_HOST": "example.com"}):
            assert resolve_env_vars("http://${TOOLMESH_TEST_HOST}/mcp") == "http://example.com/mcp"
