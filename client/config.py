"""
Client configuration.

Values are layered, later layers winning:

1. YAML file: explicit path, else $TILDECHAT_CONFIG, else ~/.tildechat/config.yaml
2. Environment: TILDECHAT_USERNAME, TILDECHAT_PASSWORD, TILDECHAT_SERVER
3. Explicit overrides (CLI flags)

Example config.yaml:

    username: alice
    password: secret
    server: 127.0.0.1:9000
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from shared.errors import ConfigMissingError
from shared.log import get_logger
from shared.utils import Address, is_hostport, parse_hostport

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".tildechat" / "config.yaml"

_ENV_KEYS = {
    "username": "TILDECHAT_USERNAME",
    "password": "TILDECHAT_PASSWORD",
    "server": "TILDECHAT_SERVER",
}


@dataclass
class ClientConfig:
    username: Optional[str] = None
    password: Optional[str] = None
    server: Optional[str] = None    # "host:port"

    def address(self) -> Optional[Address]:
        if self.server is None:
            return None
        return parse_hostport(self.server)


def _config_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path).expanduser()
    env_path = os.getenv("TILDECHAT_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigMissingError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigMissingError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigMissingError(f"{path} must contain a mapping")
    logger.debug(f"Loaded config from {path}")
    return data


def load_config(path: Optional[Path] = None, **overrides: Optional[str]) -> ClientConfig:
    """Build a ClientConfig from file, environment and overrides."""
    values: Dict[str, Optional[str]] = {key: None for key in _ENV_KEYS}

    config_path = _config_path(path)
    if config_path is not None:
        for key, value in _read_yaml(config_path).items():
            if key in values and value is not None:
                values[key] = str(value)

    for key, env_name in _ENV_KEYS.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[key] = env_value

    for key, value in overrides.items():
        if key not in values:
            raise TypeError(f"Unknown config option: {key}")
        if value is not None:
            values[key] = value

    server = values["server"]
    if server is not None and not is_hostport(server):
        raise ConfigMissingError(f"Invalid server address {server!r}, expected host:port")

    return ClientConfig(**values)
