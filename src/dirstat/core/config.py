"""Configuration system for dirstat.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages.
"""

import os
import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Regular expression pattern for environment variable references
# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


class SizeMode(str, Enum):
    """Enumeration for size calculation modes."""

    APPARENT = "apparent"  # Apparent size (file content size)
    DISK_USAGE = "disk_usage"  # Actual disk usage (considering filesystem blocks)


class ScanPolicy(BaseModel):
    """Boolean policy flags consulted while scanning.

    The scheduler reads the current snapshot once per decision, so a policy
    swapped between slices takes effect for all work that follows.
    """

    model_config: ConfigDict = ConfigDict(frozen=True, extra="forbid")  # pyright: ignore[reportIncompatibleVariableOverride]

    follow_mount_points: Annotated[
        bool,
        Field(description="Descend into volumes mounted below the scanned tree"),
    ] = False
    follow_junctions: Annotated[
        bool,
        Field(description="Descend into junctions and directory symlinks"),
    ] = False
    skip_hidden: Annotated[
        bool,
        Field(description="Ignore hidden files and directories"),
    ] = False
    show_free_space: Annotated[
        bool,
        Field(description="Add a <Free Space> item to every drive"),
    ] = False
    show_unknown: Annotated[
        bool,
        Field(description="Add an <Unknown> item for capacity not covered by the scan"),
    ] = False


class SchedulerConfig(BaseModel):
    """Configuration for time-sliced scanning."""

    slice_ms: Annotated[
        int,
        Field(
            gt=0,
            le=60_000,
            description="Length of one scheduler slice in milliseconds",
        ),
    ] = 50
    idle_interval: Annotated[
        float,
        Field(
            ge=0.0,
            le=60.0,
            description="Seconds the driver yields to the event loop between slices",
        ),
    ] = 0.0
    size_mode: Annotated[
        SizeMode,
        Field(description="Report apparent file sizes or allocated disk usage"),
    ] = SizeMode.DISK_USAGE


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False


class MainConfig(BaseModel):
    """Main configuration schema.

    Top-level configuration container aggregating all configuration sections:
    - policy: Scan policy flags
    - scheduler: Time-slicing and size settings
    - application: Application-level settings
    """

    policy: Annotated[
        ScanPolicy,
        Field(description="Scan policy flags"),
    ] = ScanPolicy()
    scheduler: Annotated[
        SchedulerConfig,
        Field(description="Scheduler configuration"),
    ] = SchedulerConfig()
    application: Annotated[
        ApplicationConfig,
        Field(description="Application-level configuration"),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails."""


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Parses ${VARIABLE_NAME} syntax and replaces with environment variable values.
    Supports multiple environment variable references in a single string.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a required environment variable is missing

    Examples:
        >>> os.environ["SCAN_LEVEL"] = "DEBUG"
        >>> resolve_env_var("${SCAN_LEVEL}")
        'DEBUG'
        >>> resolve_env_var("no variables here")
        'no variables here'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)

        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the scan."
            )
            raise EnvironmentVariableError(msg)

        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a dictionary.

    Traverses nested dictionaries and lists, resolving environment variable
    references in string values. Non-string values are preserved as-is.

    Args:
        data: Dictionary potentially containing environment variable references

    Returns:
        New dictionary with environment variables resolved

    Raises:
        EnvironmentVariableError: If a required environment variable is missing
    """
    result: dict[str, object] = {}

    for key, value in data.items():
        if isinstance(value, str):
            result[key] = resolve_env_var(value)
        elif isinstance(value, dict):
            # YAML data is untyped at load time; validated by Pydantic after resolution
            result[key] = resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
        elif isinstance(value, list):
            resolved_list: list[object] = []
            for item in value:  # pyright: ignore[reportUnknownVariableType]  # YAML list items
                if isinstance(item, str):
                    resolved_list.append(resolve_env_var(item))
                elif isinstance(item, dict):
                    resolved_list.append(resolve_env_vars_in_dict(item))  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
                else:
                    resolved_list.append(item)  # pyright: ignore[reportUnknownArgumentType]  # YAML primitives
            result[key] = resolved_list
        else:
            result[key] = value

    return result


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails."""


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If configuration file cannot be loaded or is invalid
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    # An empty file selects every default
    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the scan."
        )
        raise ConfigurationError(msg) from e

    try:
        config = MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        # Format validation errors with field-level diagnostics
        error_lines = ["Configuration validation failed:", ""]
        for error in e.errors():
            field_path = " → ".join(str(loc) for loc in error["loc"])
            error_lines.append(f"  Field: {field_path}")
            error_lines.append(f"  Error: {error['msg']}")
            error_lines.append(f"  Type: {error['type']}")
            error_lines.append("")

        error_lines.append(f"Configuration file: {config_path}")
        error_lines.append("Please fix the above errors and try again.")

        msg = "\n".join(error_lines)
        raise ConfigurationError(msg) from e

    return config
