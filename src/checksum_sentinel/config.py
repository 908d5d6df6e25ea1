"""
Configuration for CheckSum Sentinel feed sync.

Defaults are overlaid by an optional YAML file and then by environment
variables. Access goes through get_config(), which caches the result.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from checksum_sentinel.errors import ConfigError
from checksum_sentinel.feeds.sources import BUILTIN_SOURCES, FeedSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "/etc/css/config.yaml"

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "CSS_BASELINE_HASHES": ("paths", "baseline_hashes"),
    "CSS_VOLATILE_HASHES": ("paths", "volatile_hashes"),
    "CSS_RULE_DIR": ("paths", "rule_dir"),
    "CSS_HTTP_TIMEOUT": ("http", "timeout"),
    "CSS_LOG_LEVEL": (None, "log_level"),
}


class HTTPConfig(BaseModel):
    """Shared HTTP client settings."""
    timeout: float = 60.0
    user_agent: str = "CheckSumSentinel/0.1.0"


class PathsConfig(BaseModel):
    """On-disk cache locations read later by the scanner."""
    baseline_hashes: Path = Path("/var/lib/css/hashes/persistent_hashes.txt")
    volatile_hashes: Path = Path("/var/lib/css/hashes/hashes.txt")
    rule_dir: Path = Path("/var/lib/css/yara_rules")


class RulesConfig(BaseModel):
    extension: str = ".yar"


class AppConfig(BaseModel):
    """Top-level configuration tree."""
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    sources: List[FeedSource] = Field(default_factory=lambda: list(BUILTIN_SOURCES))
    log_level: str = "INFO"


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML config file, returning {} when it does not exist."""
    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return {}

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    logger.info(f"Loaded configuration from {path}")
    return data


def _apply_env(data: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay CSS_* environment variables onto raw config data."""
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        if section is None:
            data[field] = value
        else:
            data.setdefault(section, {})[field] = value
    return data


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """
    Build configuration from defaults, YAML file and environment.
    
    Args:
        config_file: YAML file path (default: $CSS_CONFIG_FILE or /etc/css/config.yaml)
        
    Returns:
        Validated AppConfig
        
    Raises:
        ConfigError: If the file is malformed or a value fails validation
    """
    path = Path(config_file or os.environ.get("CSS_CONFIG_FILE", DEFAULT_CONFIG_FILE))
    data = _apply_env(_read_yaml(path))

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None
