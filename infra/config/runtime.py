"""
Runtime configuration access.

Single source of truth: {root}/config.yaml

The only environment variable used is BOOKBINDER_ROOT to locate the
working root (loaded from .env if present). All other configuration
comes from config.yaml.
"""

import os
from pathlib import Path
from functools import lru_cache
from typing import Optional

import yaml
from dotenv import load_dotenv

from .schemas import BinderConfig

CONFIG_FILENAME = "config.yaml"

load_dotenv()


def get_root() -> Path:
    """Get the working root from environment."""
    return Path(os.getenv('BOOKBINDER_ROOT', '.')).expanduser().resolve()


def load_config(root: Optional[Path] = None) -> BinderConfig:
    """
    Load config from {root}/config.yaml.

    Returns BinderConfig with defaults if config.yaml doesn't exist.
    """
    root = Path(root).expanduser().resolve() if root else get_root()
    config_path = root / CONFIG_FILENAME

    data = {}
    if config_path.exists():
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    data['root'] = root
    return BinderConfig.model_validate(data)


@lru_cache(maxsize=1)
def get_config() -> BinderConfig:
    """Load and cache the configuration."""
    return load_config()


def reload_config() -> BinderConfig:
    """Force reload of config (clears cache)."""
    get_config.cache_clear()
    return get_config()
