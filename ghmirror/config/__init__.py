"""
Configuration — Mirror definitions and server settings.
"""

from .loader import ConfigProvider, load_config, parse_config
from .models import GlobalConfig, MirrorConfig

__all__ = [
    "ConfigProvider",
    "GlobalConfig",
    "MirrorConfig",
    "load_config",
    "parse_config",
]
