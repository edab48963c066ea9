"""
Configuration management for bookbinder.

Usage:
    from infra.config import get_config

    config = get_config()          # cached, from $BOOKBINDER_ROOT/config.yaml
    config.render.page_width_mm    # 210.0

    config = load_config(tmp_root) # explicit root (tests, tools)
"""

from .schemas import (
    BinderConfig,
    RenderSettings,
    MergeSettings,
    OCRSettings,
    CompressionSettings,
)

from .runtime import (
    CONFIG_FILENAME,
    get_root,
    load_config,
    get_config,
    reload_config,
)


__all__ = [
    # Schemas
    "BinderConfig",
    "RenderSettings",
    "MergeSettings",
    "OCRSettings",
    "CompressionSettings",
    # Runtime
    "CONFIG_FILENAME",
    "get_root",
    "load_config",
    "get_config",
    "reload_config",
]
