"""Configuration loading and validation for overlaymon.

This module provides:
- Pydantic models for configuration validation
- YAML config file discovery and loading
- Environment variable expansion in config values
- Merging of config file with defaults
- User-friendly error messages for config issues
"""

from __future__ import annotations

from difflib import get_close_matches
import os
from pathlib import Path
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
import yaml

from overlaymon.config.defaults import DEFAULT_CONFIG
from overlaymon.errors import ConfigurationError
from overlaymon.models.base import Metric
from overlaymon.probes.base import DEFAULT_PROBE_TIMEOUT
from overlaymon.probes.registry import coerce_metric

CONFIG_PATH_ENV = "OVERLAYMON_CONFIG_PATH"


class ConfigError(ConfigurationError):
    """Base exception for configuration file errors.

    Carries where the problem is and how to fix it.

    Attributes:
        message: The main error message
        file_path: Path to the config file (if applicable)
        line_number: Line number where the error occurred (if known)
        suggestion: Helpful suggestion for fixing the error
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        line_number: int | None = None,
        column: int | None = None,
        suggestion: str | None = None,
        context_lines: list[str] | None = None,
    ) -> None:
        self.message = message
        self.file_path = file_path
        self.line_number = line_number
        self.column = column
        self.suggestion = suggestion
        self.context_lines = context_lines
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the message with location, context line and suggestion."""
        if self.file_path:
            header = f"Error in {self.file_path}"
            if self.line_number:
                header += f" line {self.line_number}"
            lines = [header + ":"]
        else:
            lines = ["Configuration error:"]

        lines.append(f"  {self.message}")

        if self.context_lines and self.column:
            lines.append("")
            lines.extend(f"    {line}" for line in self.context_lines)
            lines.append(" " * (self.column + 3) + "^")

        if self.suggestion:
            lines.append("")
            lines.append(f"  Suggestion: {self.suggestion}")

        return "\n".join(lines)


class ConfigSyntaxError(ConfigError):
    """Error for YAML syntax issues."""


class ConfigValidationError(ConfigError):
    """Error for configuration value validation failures."""


class ConfigKeyError(ConfigError):
    """Error for unknown configuration keys."""


# Known keys per section, used for did-you-mean suggestions
VALID_TOP_LEVEL_KEYS = {
    "interval",
    "probe_timeout",
    "history_capacity",
    "metrics",
    "collection",
    "overlay",
    "logging",
    "sentry",
}

VALID_SECTION_KEYS: dict[str, set[str]] = {
    "collection": {"disk_path"},
    "overlay": {"auto_show", "toggle_key", "placeholder", "decimal_places"},
    "logging": {"enabled", "level", "file"},
    "sentry": {"dsn", "environment", "traces_sample_rate"},
}

# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

# Hints keyed by a fragment of the YAML error text
YAML_HINTS = (
    ("could not find expected ':'", "Check for missing colons after keys (e.g., 'key: value')"),
    ("mapping values are not allowed", "Check your indentation; nested keys must line up"),
    ("found character '\\t'", "Use spaces instead of tabs for indentation"),
    ("found undefined alias", "Define YAML anchors (&name) before their aliases (*name)"),
)


def _suggest_key(unknown_key: str, valid_keys: set[str]) -> str | None:
    """Suggest a known key close to an unknown one."""
    matches = get_close_matches(unknown_key, sorted(valid_keys), n=1, cutoff=0.6)
    if matches:
        return f"Did you mean '{matches[0]}'?"
    return None


def _describe(value: Any) -> str:
    """Describe a config value's type for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return f"number {value}"
    if isinstance(value, str):
        return f'string "{value}"'
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "mapping"
    return type(value).__name__


def _lookup(data: Any, loc: tuple[Any, ...]) -> Any:
    """Follow a pydantic error location into the raw config data."""
    for key in loc:
        if isinstance(data, dict):
            data = data.get(key)
        elif isinstance(data, list) and isinstance(key, int) and key < len(data):
            data = data[key]
        else:
            return None
    return data


def _format_pydantic_error(
    error: ValidationError,
    config_data: dict[str, Any],
    file_path: str | None = None,
) -> ConfigError:
    """Convert a pydantic ValidationError into a ConfigValidationError or ConfigKeyError.

    Only the first error is reported.

    Args:
        error: The pydantic validation error
        config_data: The raw config data for context
        file_path: Path to the config file

    Returns:
        An error with a readable message and, where possible, a suggestion
    """
    errors = error.errors()
    if not errors:
        return ConfigValidationError("Configuration validation failed", file_path=file_path)

    first = errors[0]
    loc = tuple(first.get("loc", ()))
    msg = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    error_type = first.get("type", "")
    ctx = first.get("ctx") or {}
    path = ".".join(str(part) for part in loc) or "config"
    actual = _lookup(config_data, loc)
    suggestion = None

    if error_type == "extra_forbidden":
        unknown_key = str(loc[-1]) if loc else "unknown"
        parent = str(loc[0]) if len(loc) > 1 else None
        valid = VALID_SECTION_KEYS.get(parent, set()) if parent else VALID_TOP_LEVEL_KEYS
        suggestion = _suggest_key(unknown_key, valid) or (
            f"Valid keys: {', '.join(sorted(valid))}" if valid else None
        )
        return ConfigKeyError(
            f"Unknown configuration key '{path}'",
            file_path=file_path,
            suggestion=suggestion,
        )

    if error_type in ("greater_than", "greater_than_equal", "less_than_equal"):
        message = f"Value for '{path}' is out of range: {actual}"
        if "ge" in ctx:
            suggestion = f"Value must be at least {ctx['ge']}"
        elif "gt" in ctx:
            suggestion = f"Value must be greater than {ctx['gt']}"
        elif "le" in ctx:
            suggestion = f"Value must be at most {ctx['le']}"
    elif error_type == "literal_error":
        message = f"Invalid value for '{path}': got {_describe(actual)}"
        suggestion = f"Expected one of: {ctx.get('expected', '')}"
    elif error_type in ("int_parsing", "float_parsing", "int_type", "float_type"):
        message = f"Invalid number for '{path}': got {_describe(actual)}"
        suggestion = "Please provide a valid number"
    elif error_type in ("bool_type", "bool_parsing"):
        message = f"Expected boolean for '{path}': got {_describe(actual)}"
        suggestion = "Use 'true' or 'false'"
    elif error_type == "list_type":
        message = f"Expected list for '{path}': got {_describe(actual)}"
        suggestion = "Please provide a list (e.g., [cpu_temp, gpu_temp])"
    elif error_type == "string_type":
        message = f"Expected string for '{path}': got {_describe(actual)}"
    else:
        message = f"Invalid value for '{path}': {msg}"

    return ConfigValidationError(message, file_path=file_path, suggestion=suggestion)


def _format_yaml_error(
    error: yaml.YAMLError,
    file_path: str | None = None,
    content: str | None = None,
) -> ConfigSyntaxError:
    """Convert a YAML error into a ConfigSyntaxError with line context."""
    line_number = None
    column = None
    context_lines = None

    mark = getattr(error, "problem_mark", None)
    if mark is not None:
        line_number = mark.line + 1
        column = mark.column + 1
        if content:
            lines = content.splitlines()
            if 0 <= mark.line < len(lines):
                context_lines = [lines[mark.line]]

    text = str(error).lower()
    suggestion = next((hint for fragment, hint in YAML_HINTS if fragment in text), None)

    problem = getattr(error, "problem", None)
    message = f"YAML syntax error: {problem}" if problem else "Invalid YAML syntax"

    return ConfigSyntaxError(
        message,
        file_path=file_path,
        line_number=line_number,
        column=column,
        context_lines=context_lines,
        suggestion=suggestion,
    )


def expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in config values.

    Unset variables without a default are left as written.
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            if match.group(2) is not None:
                return match.group(2)
            return match.group(0)

        return ENV_VAR_PATTERN.sub(replace, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# Pydantic Configuration Models


class CollectionConfig(BaseModel):
    """Data source settings."""

    model_config = ConfigDict(extra="forbid")

    disk_path: str = "/"


class OverlayConfig(BaseModel):
    """Overlay presentation settings."""

    model_config = ConfigDict(extra="forbid")

    auto_show: bool = True
    toggle_key: str = Field(default="g", min_length=1)
    placeholder: str = "--"
    decimal_places: int = Field(default=1, ge=0, le=6)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file: str = "~/.overlaymon/overlaymon.log"


class SentryConfig(BaseModel):
    """Error reporting configuration."""

    model_config = ConfigDict(extra="forbid")

    dsn: str | None = None
    environment: str = "production"
    traces_sample_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class Config(BaseModel):
    """Main configuration model for overlaymon.

    Loaded from YAML files merged over DEFAULT_CONFIG, then CLI overrides.
    """

    model_config = ConfigDict(extra="forbid")

    # Core settings
    interval: float = Field(default=1.0, gt=0, le=3600)
    probe_timeout: float | None = Field(default=None, gt=0)
    history_capacity: int = Field(default=30, ge=1, le=10000)
    metrics: list[Metric] = Field(default_factory=lambda: list(Metric))

    # Section configs
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sentry: SentryConfig = Field(default_factory=SentryConfig)

    @field_validator("metrics", mode="before")
    @classmethod
    def validate_metric_names(cls, v: Any) -> Any:
        """Resolve metric names, rejecting unknown ones and dropping duplicates."""
        if not isinstance(v, list):
            return v
        resolved: list[Metric] = []
        for item in v:
            try:
                metric = coerce_metric(item)
            except ConfigurationError as e:
                raise ValueError(str(e)) from e
            if metric not in resolved:
                resolved.append(metric)
        return resolved

    @model_validator(mode="after")
    def validate_probe_timeout(self) -> Config:
        """Ensure a single probe cannot outlast the tick deadline."""
        if self.probe_timeout is not None and self.probe_timeout > self.interval:
            raise ValueError(
                f"probe_timeout ({self.probe_timeout}) must not exceed interval ({self.interval})"
            )
        return self

    @property
    def effective_probe_timeout(self) -> float:
        """Per-probe timeout in seconds, never above the interval."""
        if self.probe_timeout is not None:
            return self.probe_timeout
        return min(DEFAULT_PROBE_TIMEOUT, self.interval)


def get_config_path(custom_path: str | None = None) -> Path | None:
    """Determine the configuration file path.

    Checks locations in this order:
    1. Custom path (if provided via --config flag)
    2. OVERLAYMON_CONFIG_PATH environment variable
    3. ~/.config/overlaymon/config.yaml (XDG standard)
    4. ~/.overlaymon/config.yaml (legacy location)

    Args:
        custom_path: Optional custom config path from CLI

    Returns:
        Path to config file if found, None otherwise

    Raises:
        FileNotFoundError: If custom_path is given but does not exist
    """
    if custom_path:
        path = Path(custom_path).expanduser()
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {custom_path}")

    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        path = Path(env_path).expanduser()
        return path if path.exists() else None

    for candidate in (
        Path.home() / ".config" / "overlaymon" / "config.yaml",
        Path.home() / ".overlaymon" / "config.yaml",
    ):
        if candidate.exists():
            return candidate

    return None


def load_config(
    config_path: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
    raise_on_error: bool = True,
) -> Config:
    """Load and validate configuration.

    Configuration is merged in this order (later overrides earlier):
    1. Default configuration
    2. Config file (if found)
    3. CLI overrides (if provided)

    Args:
        config_path: Optional custom config file path
        cli_overrides: Optional dict of CLI argument overrides
        raise_on_error: If False, fall back to defaults instead of raising

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If custom config path doesn't exist
        ConfigSyntaxError: If config file has invalid YAML syntax
        ConfigValidationError: If config values are invalid
        ConfigKeyError: If config has unknown keys
    """
    config_data: dict[str, Any] = DEFAULT_CONFIG.copy()
    resolved_path: Path | None = get_config_path(config_path)

    if resolved_path is not None:
        content = resolved_path.read_text()
        try:
            file_config = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            if raise_on_error:
                raise _format_yaml_error(e, str(resolved_path), content) from e
            file_config = {}

        if not isinstance(file_config, dict):
            if raise_on_error:
                raise ConfigSyntaxError(
                    "Top level of the config file must be a mapping",
                    file_path=str(resolved_path),
                    suggestion="Start the file with keys such as 'interval: 1.0'",
                )
            file_config = {}

        config_data = deep_merge(config_data, file_config)

    if cli_overrides:
        config_data = deep_merge(config_data, cli_overrides)

    config_data = expand_env_vars(config_data)

    try:
        return Config(**config_data)
    except ValidationError as e:
        if raise_on_error:
            raise _format_pydantic_error(
                e,
                config_data,
                str(resolved_path) if resolved_path else None,
            ) from e
        return Config(**DEFAULT_CONFIG)
