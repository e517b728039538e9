"""Configuration loader for flowdag.

Parses configuration into kernel config models. Supports two config sources:

1. **kind: Config YAML** loaded via explicit path or ``FLOWDAG_CONFIG_PATH``.
2. **pyproject.toml [tool.flowdag]** as the auto-discovery fallback.
"""

from __future__ import annotations

import os
import re
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from flowdag.kernel.config.models import (
    EngineConfig,
    ExecutorConfig,
    FlowDAGConfig,
    LoggingConfig,
    RunnerConfig,
    StateStoreConfig,
)
from flowdag.kernel.exceptions import ConfigurationError, ValidationError
from flowdag.kernel.logging import get_logger

_TRUTHY_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
_FALSY_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_LOG_FORMATS = frozenset({"console", "json", "structured", "rich"})
_STORE_PROVIDERS = frozenset({"memory", "file", "cli"})
_EXECUTOR_KINDS = frozenset({"cli", "local"})

logger = get_logger(__name__)


def _parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable value.

    Raises
    ------
    ValueError
        If value is not a recognized boolean string
    """
    normalized = value.lower().strip()
    if normalized in _TRUTHY_VALUES:
        return True
    if normalized in _FALSY_VALUES:
        return False
    expected = sorted(_TRUTHY_VALUES | _FALSY_VALUES)
    raise ValueError(f"Invalid boolean value: {value!r}. Expected one of: {expected}")


@lru_cache(maxsize=32)
def _load_and_parse_cached(path_str: str) -> FlowDAGConfig:
    loader = ConfigLoader()
    return loader._load_and_parse(Path(path_str))


class ConfigLoader:
    """Loads and processes flowdag configuration files."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def load_config_file(self, path: str | Path | None = None) -> FlowDAGConfig:
        """Load configuration from YAML or pyproject.toml.

        Parameters
        ----------
        path : str | Path | None
            Path to config file. If None, searches using discovery order.

        Returns
        -------
        FlowDAGConfig
            Parsed configuration with environment variables substituted
        """
        config_path = self._find_config_file(path)
        return _load_and_parse_cached(str(config_path.absolute()))

    def _load_and_parse(self, config_path: Path) -> FlowDAGConfig:
        logger.info("Loading configuration from {path}", path=config_path)

        try:
            if config_path.suffix in (".yaml", ".yml"):
                return self._load_yaml_config(config_path)
            return self._load_toml_config(config_path)
        except (yaml.YAMLError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(str(config_path), f"cannot parse file: {e}") from e

    def _load_yaml_config(self, config_path: Path) -> FlowDAGConfig:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ConfigurationError(
                str(config_path), f"expected a mapping, got {type(data).__name__}"
            )

        kind = data.get("kind")
        if kind != "Config":
            raise ConfigurationError(
                str(config_path), f"YAML config must use 'kind: Config', got 'kind: {kind}'"
            )

        spec = data.get("spec", {})
        if not isinstance(spec, dict):
            raise ConfigurationError(str(config_path), "'spec' must be a mapping")

        return self._parse_config(self._substitute_env_vars(spec))

    def _load_toml_config(self, config_path: Path) -> FlowDAGConfig:
        with config_path.open("rb") as f:
            data = tomllib.load(f)

        if config_path.name == "pyproject.toml":
            flowdag_data = data.get("tool", {}).get("flowdag", {})
            if not flowdag_data:
                logger.warning("No [tool.flowdag] section found in pyproject.toml, using defaults")
                return self._parse_config({})
        elif "tool" in data and "flowdag" in data.get("tool", {}):
            flowdag_data = data["tool"]["flowdag"]
        else:
            flowdag_data = data

        return self._parse_config(self._substitute_env_vars(flowdag_data))

    def _find_config_file(self, path: str | Path | None) -> Path:
        """Find configuration file.

        Discovery order:
        1. Explicit path argument
        2. ``FLOWDAG_CONFIG_PATH`` env var
        3. ``pyproject.toml`` in CWD
        4. ``pyproject.toml`` in parent directories (with ``[tool.flowdag]``)

        Raises
        ------
        FileNotFoundError
            If no configuration file is found
        """
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return config_path

        if env_path := os.getenv("FLOWDAG_CONFIG_PATH"):
            config_path = Path(env_path)
            if config_path.exists():
                logger.debug("Using config from FLOWDAG_CONFIG_PATH: {}", config_path)
                return config_path
            logger.warning("FLOWDAG_CONFIG_PATH set but file not found: {}", config_path)

        if Path("pyproject.toml").exists():
            return Path("pyproject.toml")

        current = Path.cwd()
        while current != current.parent:
            pyproject = current / "pyproject.toml"
            if pyproject.exists():
                with pyproject.open("rb") as f:
                    data = tomllib.load(f)
                if "flowdag" in data.get("tool", {}):
                    return pyproject
            current = current.parent

        raise FileNotFoundError(
            "No configuration file found. Provide a kind: Config YAML path, "
            "set FLOWDAG_CONFIG_PATH, or add [tool.flowdag] to pyproject.toml"
        )

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively replace ``${VAR}`` with environment values.

        Unknown variables keep their placeholder.
        """
        if isinstance(data, str):

            def replacer(match: re.Match[str]) -> str:
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    logger.debug(
                        "Environment variable ${{{var_name}}} not found, keeping placeholder",
                        var_name=var_name,
                    )
                    return match.group(0)
                return value

            return self.ENV_VAR_PATTERN.sub(replacer, data)

        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}

        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]

        return data

    def _parse_config(self, data: dict[str, Any]) -> FlowDAGConfig:
        config = FlowDAGConfig()
        config.logging = self._parse_logging_config(self._section(data, "logging"))

        try:
            if engine_data := self._section(data, "engine"):
                config.engine = EngineConfig(
                    namespace=engine_data.get("namespace", "workflows"),
                    max_parallel_tasks_warning=int(
                        engine_data.get("max_parallel_tasks_warning", 10)
                    ),
                    max_phases_suggestion=int(engine_data.get("max_phases_suggestion", 20)),
                )

            if runner_data := self._section(data, "runner"):
                config.runner = RunnerConfig(
                    container=runner_data.get("container"),
                    docker_binary=runner_data.get("docker_binary", "docker"),
                    workdir=runner_data.get("workdir"),
                    env={str(k): str(v) for k, v in runner_data.get("env", {}).items()},
                )

            if executor_data := self._section(data, "executor"):
                kind = executor_data.get("kind", "cli")
                if kind not in _EXECUTOR_KINDS:
                    raise ConfigurationError("executor", f"unknown kind {kind!r}")
                command = executor_data.get("command", ("npx", "claude-flow"))
                if isinstance(command, str):
                    command = command.split()
                config.executor = ExecutorConfig(
                    kind=kind,
                    command=tuple(command),
                    retry_backoff_seconds=float(executor_data.get("retry_backoff_seconds", 1.0)),
                    non_interactive=self._as_bool(executor_data.get("non_interactive", True)),
                    env={str(k): str(v) for k, v in executor_data.get("env", {}).items()},
                )

            if store_data := self._section(data, "state_store"):
                provider = store_data.get("provider", "memory")
                if provider not in _STORE_PROVIDERS:
                    raise ConfigurationError("state_store", f"unknown provider {provider!r}")
                config.state_store = StateStoreConfig(
                    provider=provider,
                    path=store_data.get("path", ".flowdag/state"),
                )
        except ValidationError as e:
            raise ConfigurationError(e.field, e.constraint) from e

        return config

    @staticmethod
    def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
        section = data.get(name, {})
        if not isinstance(section, dict):
            raise ConfigurationError(name, "section must be a mapping")
        return section

    @staticmethod
    def _as_bool(value: Any) -> bool:
        if isinstance(value, str):
            return _parse_bool_env(value)
        return bool(value)

    def _parse_logging_config(self, logging_data: dict[str, Any]) -> LoggingConfig:
        """Parse logging configuration with environment variable overrides.

        Environment variables take precedence over config file values:
        - FLOWDAG_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        - FLOWDAG_LOG_FORMAT: Output format (console, json, structured, rich)
        - FLOWDAG_LOG_FILE: Optional file path for log output
        - FLOWDAG_LOG_COLOR: Use color output (true/false)
        - FLOWDAG_LOG_TIMESTAMP: Include timestamp (true/false)
        """
        level = str(logging_data.get("level", "INFO")).upper()
        format_type = str(logging_data.get("format", "structured")).lower()
        output_file = logging_data.get("output_file")
        use_color = logging_data.get("use_color", True)
        include_timestamp = logging_data.get("include_timestamp", True)

        if env_level := os.getenv("FLOWDAG_LOG_LEVEL"):
            level = env_level.upper()
            logger.debug("Overriding log level from env: {}", level)

        if env_format := os.getenv("FLOWDAG_LOG_FORMAT"):
            format_type = env_format.lower()
            logger.debug("Overriding log format from env: {}", format_type)

        if env_file := os.getenv("FLOWDAG_LOG_FILE"):
            output_file = env_file

        if env_color := os.getenv("FLOWDAG_LOG_COLOR"):
            try:
                use_color = _parse_bool_env(env_color)
            except ValueError as e:
                logger.warning("Invalid FLOWDAG_LOG_COLOR value: {}", e)

        if env_timestamp := os.getenv("FLOWDAG_LOG_TIMESTAMP"):
            try:
                include_timestamp = _parse_bool_env(env_timestamp)
            except ValueError as e:
                logger.warning("Invalid FLOWDAG_LOG_TIMESTAMP value: {}", e)

        if level not in _LOG_LEVELS:
            raise ConfigurationError("logging", f"unknown level {level!r}")
        if format_type not in _LOG_FORMATS:
            raise ConfigurationError("logging", f"unknown format {format_type!r}")

        return LoggingConfig(
            level=level,  # type: ignore[arg-type]
            format=format_type,  # type: ignore[arg-type]
            output_file=output_file,
            use_color=bool(use_color),
            include_timestamp=bool(include_timestamp),
        )


def load_config(path: str | Path | None = None) -> FlowDAGConfig:
    """Load configuration from file or return defaults.

    Parameters
    ----------
    path : str | Path | None
        Path to configuration file or None to search

    Returns
    -------
    FlowDAGConfig
        Loaded configuration or defaults if no file found
    """
    try:
        return ConfigLoader().load_config_file(path)
    except FileNotFoundError:
        if path:
            raise
        logger.info("No configuration file found, using defaults")
        return FlowDAGConfig()


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when configuration files have been modified.
    """
    _load_and_parse_cached.cache_clear()
