"""
BallotBox TOML Configuration Loader

Loads every section of ballotbox.toml with environment variable overrides
(dataclass + from_dict + apply_env + from_file).

Environment variable mapping:
    [engine] admin               → BALLOTBOX_ADMIN
    [engine] registration_period → BALLOTBOX_REGISTRATION_PERIOD
    [engine] voting_duration     → BALLOTBOX_VOTING_DURATION
    [engine] event_history       → BALLOTBOX_EVENT_HISTORY
    [logging] level              → BALLOTBOX_LOG_LEVEL
    [logging] file               → BALLOTBOX_LOG_FILE
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import REGISTRATION_PERIOD, VOTING_DURATION
from ..governance.identity import is_valid_identity

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "ballotbox.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when configuration values are out of range."""


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class EngineConfig:
    """[engine] section."""
    admin: str = ""
    registration_period: int = REGISTRATION_PERIOD
    voting_duration: int = VOTING_DURATION
    event_history: int = 0          # 0 keeps every event

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        return cls(
            admin=data.get("admin", ""),
            registration_period=int(data.get("registration_period", REGISTRATION_PERIOD)),
            voting_duration=int(data.get("voting_duration", VOTING_DURATION)),
            event_history=int(data.get("event_history", 0)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("BALLOTBOX_ADMIN"):
            self.admin = v
        if v := os.environ.get("BALLOTBOX_REGISTRATION_PERIOD"):
            self.registration_period = int(v)
        if v := os.environ.get("BALLOTBOX_VOTING_DURATION"):
            self.voting_duration = int(v)
        if v := os.environ.get("BALLOTBOX_EVENT_HISTORY"):
            self.event_history = int(v)

    def validate(self) -> None:
        if not is_valid_identity(self.admin):
            raise ConfigError(f"Invalid admin identity: {self.admin!r}")
        if self.registration_period <= 0:
            raise ConfigError(
                f"registration_period must be > 0 (got {self.registration_period})"
            )
        if self.voting_duration <= 0:
            raise ConfigError(
                f"voting_duration must be > 0 (got {self.voting_duration})"
            )
        if self.event_history < 0:
            raise ConfigError(
                f"event_history must be >= 0 (got {self.event_history})"
            )


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file: str = "logs/ballotbox.log"
    console: bool = True
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file=data.get("file", "logs/ballotbox.log"),
            console=data.get("console", True),
            file_output=data.get("file_output", False),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BALLOTBOX_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("BALLOTBOX_LOG_FILE"):
            self.file = v
            self.file_output = True

    def validate(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.level}")

    def apply(self) -> None:
        """Reconfigure the logging system with these settings."""
        from ..logger import LogManager

        LogManager().reconfigure(
            log_level=self.level,
            log_file=Path(self.file),
            console_output=self.console,
            file_output=self.file_output,
        )


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class BallotConfig:
    """
    Unified BallotBox configuration.

    Loads every section of ballotbox.toml and applies environment variable
    overrides. This is the single source of truth at runtime.
    """
    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BallotConfig":
        """Create BallotConfig from a parsed TOML dict."""
        return cls(
            engine=EngineConfig.from_dict(data.get("engine", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "BallotConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to ballotbox.toml

        Returns:
            BallotConfig instance (defaults if the file does not exist)
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            raw = tomli.load(f)

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.engine.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigError: on invalid config
        """
        self.engine.validate()
        self.logging.validate()
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "engine": {
                "admin": self.engine.admin,
                "registration_period": self.engine.registration_period,
                "voting_duration": self.engine.voting_duration,
                "event_history": self.engine.event_history,
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
                "console": self.logging.console,
                "file_output": self.logging.file_output,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> BallotConfig:
    """
    Load BallotBox configuration.

    Resolution order:
        1. Explicit *path* argument
        2. BALLOTBOX_CONFIG env var
        3. ./ballotbox.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("BALLOTBOX_CONFIG", DEFAULT_CONFIG_FILE)

    return BallotConfig.from_file(path)
