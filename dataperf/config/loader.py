"""Configuration file loading.

Loads monitor configuration from a YAML file. String values may reference
environment variables as ``${VAR_NAME}`` or ``${VAR_NAME:default}``.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from ..exceptions import ConfigurationFileError
from .settings import MonitorConfig, build_monitor_config

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values, recursively.

    Raises:
        ConfigurationFileError: If a required environment variable is missing
    """
    if isinstance(value, str):

        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)

            env_value = os.getenv(var_name)
            if env_value is not None:
                return env_value
            if default_value is not None:
                return default_value
            raise ConfigurationFileError(
                f"Required environment variable '{var_name}' not found",
                details={"variable": var_name},
            )

        return _ENV_PATTERN.sub(replacer, value)
    if isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def load_monitor_config(
    config_path: str | Path, section: str | None = "performance"
) -> MonitorConfig:
    """Load monitor configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file
        section: Top-level key holding the monitor options; ``None`` uses the
            whole document. A missing section yields the defaults.

    Returns:
        Validated monitor configuration

    Raises:
        ConfigurationFileError: If the file cannot be read or parsed
        ConfigurationValidationError: If the options are invalid
    """
    config_path = Path(config_path)

    if not config_path.is_file():
        raise ConfigurationFileError(
            f"Configuration file not found: {config_path}", file_path=str(config_path)
        )

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationFileError(
            f"Failed to parse YAML configuration: {e}", file_path=str(config_path)
        ) from e
    except OSError as e:
        raise ConfigurationFileError(
            f"Failed to read configuration file: {e}", file_path=str(config_path)
        ) from e

    if config_data is None:
        config_data = {}
    if section is not None and isinstance(config_data, dict):
        config_data = config_data.get(section) or {}

    if not isinstance(config_data, dict):
        raise ConfigurationFileError(
            "Monitor configuration must be a mapping", file_path=str(config_path)
        )

    return build_monitor_config(**substitute_env_vars(config_data))
