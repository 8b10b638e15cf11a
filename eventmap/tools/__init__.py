"""Configuration helpers."""

from .config_loader import ConfigLoader, get_config, load_environment

__all__ = [
    "ConfigLoader",
    "get_config",
    "load_environment",
]
