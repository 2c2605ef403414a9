"""
Block type configuration and plugins.
"""

from .configuration import HOOK_NAMES, BlockTypeConfig, Configuration
from .plugins import Plugin

__all__ = [
    "BlockTypeConfig",
    "Configuration",
    "HOOK_NAMES",
    "Plugin",
]
