from __future__ import annotations
from dataclasses import asdict, dataclass, replace
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlparse

import yaml

from rps_shared.errors import ConfigError
from rps_shared.log import get_logger

logger = get_logger(__name__)


DEFAULT_ENDPOINT = "ws://localhost:8765"
DEFAULT_CONFIG_FILE = "rps_client.yaml"
ENV_ENDPOINT = "RPS_SERVER"
ENV_CONFIG = "RPS_CONFIG"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def is_ws_url(s: str) -> bool:
    """
    Accepts 'ws://host[:port][/path]' or 'wss://...'.
    """
    try:
        parsed = urlparse(s)
        return parsed.scheme in ("ws", "wss") and bool(parsed.hostname)
    except ValueError:
        return False


def _is_delay(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def _is_optional_delay(value: Any) -> bool:
    return value is None or (_is_delay(value) and value > 0)


_VALIDATORS = {
    "endpoint": lambda v: isinstance(v, str) and is_ws_url(v),
    "reconnect_delay": _is_delay,
    "result_delay": _is_delay,
    "ping_interval": _is_optional_delay,
    "ping_timeout": _is_optional_delay,
    "log_level": lambda v: isinstance(v, str) and v.upper() in LOG_LEVELS,
}


@dataclass(frozen=True)
class ClientConfig:
    endpoint: str = DEFAULT_ENDPOINT
    reconnect_delay: float = 3.0
    result_delay: float = 3.0
    ping_interval: Optional[float] = 15.0
    ping_timeout: Optional[float] = 45.0
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClientConfig:
        """Build a config from a mapping, skipping unknown or invalid entries."""
        values: Dict[str, Any] = {}
        for key, value in data.items():
            validator = _VALIDATORS.get(key)
            if validator is None:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            if not validator(value):
                logger.warning("Ignoring invalid value for %r: %r", key, value)
                continue
            values[key] = value.upper() if key == "log_level" else value
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> ClientConfig:
        """Apply command-line overrides. None means 'not given'."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        for key, value in changes.items():
            validator = _VALIDATORS.get(key)
            if validator is None:
                raise ConfigError(f"Unknown config option: {key}")
            if not validator(value):
                raise ConfigError(f"Invalid value for {key}: {value!r}")
        if "log_level" in changes:
            changes["log_level"] = changes["log_level"].upper()
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_config_path(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    return Path(env.get(ENV_CONFIG) or DEFAULT_CONFIG_FILE)


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Read the YAML config file. Returns {} when it is missing or unreadable."""
    if not path.exists():
        logger.info(f"No config file at {path}; using defaults")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.error(f"Config file {path} must contain a mapping")
        return {}
    return data


def load_config(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """
    Resolve the client configuration.

    Order, later wins: defaults, YAML file, RPS_SERVER environment variable.
    """
    env = os.environ if env is None else env
    config_path = Path(path) if path is not None else default_config_path(env)
    config = ClientConfig.from_dict(_load_yaml(config_path))

    endpoint = env.get(ENV_ENDPOINT)
    if endpoint:
        if is_ws_url(endpoint):
            config = replace(config, endpoint=endpoint)
        else:
            logger.warning(f"Ignoring {ENV_ENDPOINT}={endpoint!r}: not a ws:// or wss:// URL")
    return config
