"""
BallotBox Configuration

Loads ballotbox.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    BallotConfig,
    ConfigError,
    EngineConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "BallotConfig",
    "ConfigError",
    "EngineConfig",
    "LoggingConfig",
    "load_config",
]
