"""
Configuration module.

Built-in defaults, overridable by config/settings.yaml and by explicit
overrides passed to ConfigLoader.build().
"""
from .defaults import AppConfig, get_default_config
from .loader import ConfigLoader

__all__ = ["AppConfig", "ConfigLoader", "get_default_config"]
