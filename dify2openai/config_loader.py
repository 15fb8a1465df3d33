"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("dify2openai")

# Default paths (relative to the working directory)
DEFAULT_CONFIG_PATH = "configs/config.yaml"
DEFAULT_ENV_PATH = ".env"

# Environment variable to override the config path
CONFIG_PATH_ENV = "DIFY2OPENAI_CONFIG"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def resolve_config_path(path: Optional[str] = None) -> tuple[Path, bool]:
    """Resolve the config path and whether it was asked for explicitly."""
    explicit = path or os.getenv(CONFIG_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser(), True
    return Path(DEFAULT_CONFIG_PATH), False


def load_env_values(env_path: Optional[str] = None) -> dict[str, str]:
    """Load values from a .env file without mutating os.environ."""
    path = Path(env_path or DEFAULT_ENV_PATH)
    if not path.exists():
        return {}
    logger.info(f"Loading environment variables from {path}")
    raw_values = dotenv_values(path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(
    path: Optional[str] = None,
    env_values: Optional[Mapping[str, str]] = None,
    substitute_env: bool = True,
) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to DIFY2OPENAI_CONFIG, or
              configs/config.yaml in the working directory.
        env_values: Values from a .env file used for substitution before
              falling back to os.environ.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary. Empty when no explicit path was
        given and the default file does not exist.

    Raises:
        ConfigurationError: If an explicit file is missing or is not a mapping.
    """
    config_path, explicit = resolve_config_path(path)

    if not config_path.exists():
        if explicit:
            logger.error(f"Config file not found: {config_path}")
            raise ConfigurationError(f"Config file not found: {config_path}")
        logger.info("No config file at %s, using environment only", config_path)
        return {}

    logger.info(f"Loading configuration from {config_path}")
    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")

    if substitute_env:
        data = _substitute_env_vars(data, env_values)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return data


def _substitute_env_vars(
    obj: Any, env_values: Optional[Mapping[str, str]] = None
) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports two formats:
    - ${VAR_NAME}: Braced format
    - $VAR_NAME: Simple format

    Unset variables are left as the literal placeholder and logged.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"The literal placeholder will be used."
                )
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj
