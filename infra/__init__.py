from infra.config import BinderConfig, get_config

__all__ = [
    "BinderConfig",
    "get_config",
]
