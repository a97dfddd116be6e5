"""Configuration for the explorer viewer."""

from .runtime_config import ExplorerConfig, get_config, load_config, reset_config_cache

__all__ = ["ExplorerConfig", "get_config", "load_config", "reset_config_cache"]
