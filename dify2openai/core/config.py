"""Immutable gateway settings, validated once at startup."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from ..config_loader import load_config, load_env_values
from .exceptions import ConfigurationError

logger = logging.getLogger("dify2openai")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3012
DEFAULT_MODEL_NAME = "dify"
DEFAULT_TIMEOUT = 60.0
DEFAULT_USER = "apiuser"

# Levels uvicorn accepts for its own loggers
LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


class BotType(str, Enum):
    """Kind of Dify application behind the gateway."""

    CHAT = "Chat"
    COMPLETION = "Completion"
    WORKFLOW = "Workflow"

    @property
    def api_path(self) -> str:
        return _API_PATHS[self]

    @classmethod
    def parse(cls, value: Any) -> "BotType":
        if isinstance(value, cls):
            return value
        for bot_type in cls:
            if bot_type.value == value:
                return bot_type
        allowed = ", ".join(bot_type.value for bot_type in cls)
        raise ConfigurationError(f"Invalid bot type {value!r}; expected one of: {allowed}")


_API_PATHS = {
    BotType.CHAT: "/chat-messages",
    BotType.COMPLETION: "/completion-messages",
    BotType.WORKFLOW: "/workflows/run",
}


@dataclass(frozen=True)
class Settings:
    """Gateway configuration shared read-only by all requests."""

    api_url: str
    bot_type: BotType = BotType.WORKFLOW
    input_variable: Optional[str] = None
    output_variable: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    read_timeout: Optional[float] = None
    user: str = DEFAULT_USER
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.api_url:
            raise ConfigurationError("DIFY API URL is required.")
        if not self.api_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid DIFY API URL: {self.api_url!r}")
        object.__setattr__(self, "bot_type", BotType.parse(self.bot_type))
        if not 1 <= self.port <= 65535:
            raise ConfigurationError(f"Invalid port: {self.port!r}; expected 1-65535")
        if self.timeout <= 0:
            raise ConfigurationError(f"Invalid timeout: {self.timeout!r}; must be positive")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ConfigurationError(f"Invalid read_timeout: {self.read_timeout!r}; must be positive")
        level = str(self.log_level).lower()
        if level not in LOG_LEVELS:
            allowed = ", ".join(LOG_LEVELS)
            raise ConfigurationError(f"Invalid log level {self.log_level!r}; expected one of: {allowed}")
        object.__setattr__(self, "log_level", level.upper())

    @property
    def upstream_url(self) -> str:
        return f"{self.api_url.rstrip('/')}{self.bot_type.api_path}"


# Environment variable -> (section, key) in the YAML layout
ENV_OVERRIDES = {
    "DIFY_API_URL": ("upstream", "api_url"),
    "BOT_TYPE": ("upstream", "bot_type"),
    "INPUT_VARIABLE": ("upstream", "input_variable"),
    "OUTPUT_VARIABLE": ("upstream", "output_variable"),
    "DIFY_USER": ("upstream", "user"),
    "UPSTREAM_TIMEOUT": ("upstream", "timeout"),
    "UPSTREAM_READ_TIMEOUT": ("upstream", "read_timeout"),
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
    "MODELS_NAME": (None, "model_name"),
    "LOG_LEVEL": (None, "log_level"),
}


def build_settings(
    config: Mapping[str, Any],
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings from a config mapping; environment values take priority."""
    environ = environ if environ is not None else {}
    upstream = dict(config.get("upstream") or {})
    server = dict(config.get("server") or {})
    top = {key: config.get(key) for key in ("model_name", "log_level")}
    sections = {"upstream": upstream, "server": server, None: top}

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is not None and value != "":
            sections[section][key] = value

    return Settings(
        api_url=str(upstream.get("api_url") or ""),
        bot_type=upstream.get("bot_type") or BotType.WORKFLOW,
        input_variable=upstream.get("input_variable") or None,
        output_variable=upstream.get("output_variable") or None,
        model_name=str(top.get("model_name") or DEFAULT_MODEL_NAME),
        host=str(server.get("host") or DEFAULT_HOST),
        port=_parse_int("port", server.get("port"), DEFAULT_PORT),
        timeout=_parse_float("timeout", upstream.get("timeout"), DEFAULT_TIMEOUT),
        read_timeout=_parse_float("read_timeout", upstream.get("read_timeout"), None),
        user=str(upstream.get("user") or DEFAULT_USER),
        log_level=str(top.get("log_level") or "INFO").upper(),
    )


def load_settings(
    config_path: Optional[str] = None,
    env_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Read the YAML file, the .env file and the process environment.

    Precedence, highest first: process environment, .env file, YAML file.
    """
    env_values = load_env_values(env_path)
    merged_env = dict(env_values)
    merged_env.update(environ if environ is not None else os.environ)
    config = load_config(config_path, env_values=env_values)
    settings = build_settings(config, merged_env)
    logger.info(
        "Settings loaded: upstream=%s bot_type=%s model=%s",
        settings.upstream_url,
        settings.bot_type.value,
        settings.model_name,
    )
    return settings


def _parse_int(name: str, value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid {name}: {value!r}") from exc


def _parse_float(name: str, value: Any, default: Optional[float]) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid {name}: {value!r}") from exc
