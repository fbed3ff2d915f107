"""toolmesh configuration loader."""

import os
import re
import typing
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from toolmesh.errors import create_error
from toolmesh.mcp.naming import SEPARATOR, is_valid_segment
from toolmesh.types import LogLevel, ValidationIssue, ValidationResult

from .models import ToolmeshConfig

CONFIG_PATH_ENV = "TOOLMESH_CONFIG_PATH"
LOCAL_CONFIG = "toolmesh.yaml"

VALID_KEYS = {"servers", "connection", "chat", "llm", "logging", "telemetry"}


ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<op>[?-])(?P<arg>[^}]*))?\}")


def resolve_env_vars(value: str) -> str:
    """Expand ``${VAR}`` references from the environment.

    ``${VAR:-default}`` falls back to ``default``. ``${VAR}`` and
    ``${VAR:?message}`` fail with CONFIG_INVALID when ``VAR`` is unset.
    """

    def expand(match: re.Match[str]) -> str:
        name = match.group("name")
        if name in os.environ:
            return os.environ[name]
        if match.group("op") == "-":
            return match.group("arg")
        message = match.group("arg") if match.group("op") == "?" else ""
        raise create_error(
            "CONFIG_INVALID", detail=message or f"Environment variable {name} is not set"
        )

    return ENV_REFERENCE.sub(expand, value)


def _expand_all(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    if isinstance(data, list):
        return [_expand_all(item) for item in data]
    if isinstance(data, dict):
        return {key: _expand_all(item) for key, item in data.items()}
    return data


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class ConfigLoader:
    """Load and validate toolmesh configuration."""

    def __init__(self, logger: Any = None):
        """Initialize config loader.

        Args:
            logger: Optional ToolmeshLogger instance
        """
        self._config: ToolmeshConfig | None = None
        self._config_path: Path | None = None
        self._logger = logger

    @property
    def config_path(self) -> Path | None:
        """Path the current configuration was loaded from, if any."""
        return self._config_path

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> ToolmeshConfig:
        """Load configuration from file.

        Resolution order if path not specified:
        1. TOOLMESH_CONFIG_PATH environment variable
        2. ./toolmesh.yaml
        3. ~/.toolmesh/config.yaml
        4. If use_defaults=True and no file found, use default configuration

        Args:
            path: Optional path to config file
            use_defaults: If True, use default config when no file found

        Returns:
            Loaded ToolmeshConfig instance

        Raises:
            ToolmeshError: If file not found (when use_defaults=False) or invalid
        """
        if path is None:
            path = self._resolve_config_path()

        config_path = Path(path)

        if not config_path.exists():
            if use_defaults:
                self._log(LogLevel.INFO, "No config file found, using default configuration")
                return self.load_defaults()
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Configuration file not found: {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Invalid YAML in config file: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error("CONFIG_INVALID", detail="Config file must contain a mapping")

        data = _expand_all(data)
        return self.load_from_dict(data, config_path)

    def load_defaults(self) -> ToolmeshConfig:
        """Load default configuration without a file."""
        return self.load_from_dict({})

    def load_from_dict(
        self, data: dict[str, Any], config_path: Path | None = None
    ) -> ToolmeshConfig:
        """Load configuration from dictionary.

        Args:
            data: Configuration dictionary
            config_path: Optional path to config file (for tracking)

        Returns:
            Loaded ToolmeshConfig instance

        Raises:
            ToolmeshError: If configuration is invalid
        """
        validation = self.validate(data)
        for issue in validation.warnings:
            self._log(LogLevel.WARN, f"{issue.path}: {issue.message}")
        if not validation.valid:
            error_messages = [f"- {issue.path}: {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration validation failed:\n" + "\n".join(error_messages),
            )

        try:
            config = self._dict_to_config(data)
        except (TypeError, ValueError) as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Failed to parse configuration: {e}",
            ) from e

        self._config = config
        self._config_path = config_path
        self._log(LogLevel.DEBUG, "Configuration loaded successfully")
        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate config data without loading.

        Args:
            data: Configuration dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        for key in data:
            if key not in VALID_KEYS:
                warnings.append(
                    ValidationIssue(
                        path=key,
                        message=f"Unknown configuration key: {key}",
                        severity="warning",
                    )
                )

        errors.extend(self._validate_servers(data.get("servers")))

        connection = data.get("connection")
        if connection is not None and not isinstance(connection, dict):
            errors.append(ValidationIssue(path="connection", message="must be a dictionary"))
        elif isinstance(connection, dict):
            for key in ("connection_timeout_ms", "call_timeout_ms", "close_timeout_seconds"):
                if key in connection and not _is_positive_number(connection[key]):
                    errors.append(
                        ValidationIssue(
                            path=f"connection.{key}",
                            message=f"{key} must be a positive number",
                        )
                    )
            for policy in ("tool_retry", "catalog_retry"):
                retry = connection.get(policy)
                if isinstance(retry, dict) and "max_attempts" in retry:
                    attempts = retry["max_attempts"]
                    if not isinstance(attempts, int) or attempts < 1:
                        errors.append(
                            ValidationIssue(
                                path=f"connection.{policy}.max_attempts",
                                message="max_attempts must be an integer >= 1",
                            )
                        )

        chat = data.get("chat")
        if chat is not None and not isinstance(chat, dict):
            errors.append(ValidationIssue(path="chat", message="must be a dictionary"))
        elif isinstance(chat, dict) and "max_tool_rounds" in chat:
            rounds = chat["max_tool_rounds"]
            if not isinstance(rounds, int) or isinstance(rounds, bool) or rounds < 1:
                errors.append(
                    ValidationIssue(
                        path="chat.max_tool_rounds",
                        message="max_tool_rounds must be a positive integer",
                    )
                )

        llm = data.get("llm")
        if isinstance(llm, dict) and not llm.get("api_key"):
            warnings.append(
                ValidationIssue(
                    path="llm.api_key",
                    message="No LLM API key configured",
                    severity="warning",
                )
            )

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def _validate_servers(self, servers: Any) -> list[ValidationIssue]:
        if servers is None:
            return []
        if not isinstance(servers, list):
            return [ValidationIssue(path="servers", message="servers must be a list")]

        errors: list[ValidationIssue] = []
        seen: set[str] = set()
        for index, server in enumerate(servers):
            path = f"servers[{index}]"
            if not isinstance(server, dict):
                errors.append(ValidationIssue(path=path, message="must be a dictionary"))
                continue

            name = server.get("name")
            if not isinstance(name, str) or not name:
                errors.append(ValidationIssue(path=f"{path}.name", message="name is required"))
            elif not is_valid_segment(name):
                errors.append(
                    ValidationIssue(
                        path=f"{path}.name",
                        message=(
                            f"name must not contain '{SEPARATOR}' "
                            "or start or end with '_'"
                        ),
                    )
                )
            elif name in seen:
                errors.append(
                    ValidationIssue(path=f"{path}.name", message=f"duplicate server '{name}'")
                )
            else:
                seen.add(name)

            url = server.get("url")
            if not isinstance(url, str) or not url.startswith(("http://", "https://")):
                errors.append(
                    ValidationIssue(path=f"{path}.url", message="url must be an http(s) URL")
                )
        return errors

    def get(self) -> ToolmeshConfig:
        """Get current configuration.

        Raises:
            ToolmeshError: If configuration not loaded
        """
        if self._config is None:
            raise create_error("CONFIG_INVALID", detail="Configuration not loaded")
        return self._config

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger:
            self._logger._log(level, "config", message)

    def _resolve_config_path(self) -> Path:
        """Resolve config file path using resolution order."""
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path)

        local_path = Path(LOCAL_CONFIG)
        if local_path.exists():
            return local_path

        home_path = Path.home() / ".toolmesh" / "config.yaml"
        if home_path.exists():
            return home_path

        # Not found - use local path as default
        return local_path

    def _dict_to_config(self, data: dict[str, Any]) -> ToolmeshConfig:
        kwargs: dict[str, Any] = {}
        hints = typing.get_type_hints(ToolmeshConfig)
        for f in fields(ToolmeshConfig):
            if f.name in data:
                kwargs[f.name] = self._convert_field(hints[f.name], data[f.name])
        return ToolmeshConfig(**kwargs)

    def _convert_field(self, field_type: Any, value: Any) -> Any:
        """Convert field value to appropriate type.

        Args:
            field_type: Expected field type
            value: Value to convert

        Returns:
            Converted value
        """
        if value is None:
            return None

        origin = typing.get_origin(field_type)

        if origin is list:
            if not isinstance(value, list):
                return value
            args = typing.get_args(field_type)
            if args:
                return [self._convert_field(args[0], item) for item in value]
            return value

        if origin is dict:
            if not isinstance(value, dict):
                return value
            args = typing.get_args(field_type)
            if args and len(args) == 2:
                return {k: self._convert_field(args[1], v) for k, v in value.items()}
            return value

        if hasattr(field_type, "__dataclass_fields__"):
            if isinstance(value, dict):
                hints = typing.get_type_hints(field_type)
                kwargs = {}
                for f in fields(field_type):
                    if f.name in value:
                        kwargs[f.name] = self._convert_field(hints[f.name], value[f.name])
                return field_type(**kwargs)
            return value

        if isinstance(field_type, type) and any(
            base.__name__ == "Enum" for base in field_type.__mro__
        ):
            if isinstance(value, str):
                return field_type(value)
            return value

        return value


# Convenience singleton
_default_loader: ConfigLoader | None = None


def get_config_loader() -> ConfigLoader:
    """Get default config loader singleton."""
    global _default_loader  # noqa: PLW0603
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader


def load_config(path: str | Path | None = None) -> ToolmeshConfig:
    """Convenience function to load config.

    Args:
        path: Optional path to config file

    Returns:
        Loaded ToolmeshConfig instance
    """
    return get_config_loader().load(path)
