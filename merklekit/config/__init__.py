"""
Runtime Configuration Module

Provides configuration loading and the default hash engine.
"""

from .logging_setup import setup_logging
from .runtime import (
    HashConfig,
    LoggingConfig,
    RuntimeConfig,
    SparseTreeConfig,
    TreeConfig,
    get_default_config,
    get_default_engine,
    set_default_config,
)

__all__ = [
    "HashConfig",
    "LoggingConfig",
    "RuntimeConfig",
    "SparseTreeConfig",
    "TreeConfig",
    "get_default_config",
    "get_default_engine",
    "set_default_config",
    "setup_logging",
]
