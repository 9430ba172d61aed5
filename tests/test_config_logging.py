"""
Configuration & Logging Test Suite

Coverage:
  - ballotbox.toml loading, defaults, environment overrides, validation
  - .env setting wrappers (ConfigString / ConfigBool / parse_bool)
  - TerminalSafeFormatter sanitisation, format validation
  - BallotLogHighlighter protection of quoted titles
  - engine rejection logging
"""

import logging
import os
import sys

import pytest
from rich.text import Text

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ballotbox.config import BallotConfig, ConfigError, load_config
from ballotbox.constants import (
    LOG_FORMAT,
    REGISTRATION_PERIOD,
    VOTING_DURATION,
    ConfigBool,
    ConfigString,
    parse_bool,
)
from ballotbox.governance import VotingEngine, normalize_identity
from ballotbox.logger import (
    BallotLogHighlighter,
    LogManager,
    TerminalSafeFormatter,
    get_logger,
)

ADMIN = normalize_identity("0x" + "ad" * 20)

CONFIG_TOML = f"""
[engine]
admin = "{ADMIN}"
registration_period = 3600
voting_duration = 7200

[logging]
level = "debug"
console = false
"""

ENV_VARS = (
    "BALLOTBOX_ADMIN",
    "BALLOTBOX_REGISTRATION_PERIOD",
    "BALLOTBOX_VOTING_DURATION",
    "BALLOTBOX_EVENT_HISTORY",
    "BALLOTBOX_LOG_LEVEL",
    "BALLOTBOX_LOG_FILE",
    "BALLOTBOX_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ══════════════════════════════════════════════════════════════════════
#  TOML CONFIGURATION
# ══════════════════════════════════════════════════════════════════════


class TestBallotConfig:

    def test_defaults_when_file_missing(self, tmp_path):
        cfg = BallotConfig.from_file(str(tmp_path / "missing.toml"))
        assert cfg.engine.admin == ""
        assert cfg.engine.registration_period == REGISTRATION_PERIOD
        assert cfg.engine.voting_duration == VOTING_DURATION
        assert cfg.logging.level == "INFO"
        with pytest.raises(ConfigError, match="admin"):
            cfg.validate()

    def test_defaults_with_admin_are_valid(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BALLOTBOX_ADMIN", ADMIN)
        cfg = BallotConfig.from_file(str(tmp_path / "missing.toml"))
        assert cfg.validate()

    def test_load_file(self, tmp_path):
        path = tmp_path / "ballotbox.toml"
        path.write_text(CONFIG_TOML)
        cfg = BallotConfig.from_file(str(path))
        assert cfg.engine.admin == ADMIN
        assert cfg.engine.registration_period == 3600
        assert cfg.engine.voting_duration == 7200
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.console is False

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "ballotbox.toml"
        path.write_text(CONFIG_TOML)
        monkeypatch.setenv("BALLOTBOX_VOTING_DURATION", "60")
        monkeypatch.setenv("BALLOTBOX_LOG_LEVEL", "warning")
        monkeypatch.setenv("BALLOTBOX_LOG_FILE", str(tmp_path / "x.log"))
        cfg = BallotConfig.from_file(str(path))
        assert cfg.engine.voting_duration == 60
        assert cfg.engine.registration_period == 3600
        assert cfg.logging.level == "WARNING"
        assert cfg.logging.file_output is True

    def test_load_config_reads_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text(CONFIG_TOML)
        monkeypatch.setenv("BALLOTBOX_CONFIG", str(path))
        assert load_config().engine.registration_period == 3600

    def test_load_config_explicit_path(self, tmp_path):
        path = tmp_path / "explicit.toml"
        path.write_text(CONFIG_TOML)
        assert load_config(str(path)).engine.voting_duration == 7200

    @pytest.mark.parametrize("field_name", ["registration_period", "voting_duration"])
    def test_non_positive_period_invalid(self, field_name):
        cfg = BallotConfig()
        cfg.engine.admin = ADMIN
        setattr(cfg.engine, field_name, 0)
        with pytest.raises(ConfigError, match=field_name):
            cfg.validate()

    def test_invalid_log_level(self):
        cfg = BallotConfig.from_dict({"engine": {"admin": ADMIN}, "logging": {"level": "loud"}})
        with pytest.raises(ConfigError, match="log level"):
            cfg.validate()

    @pytest.mark.parametrize("admin", ["", "   ", "0x" + "00" * 20])
    def test_invalid_admin(self, admin):
        cfg = BallotConfig.from_dict({"engine": {"admin": admin}})
        with pytest.raises(ConfigError, match="admin"):
            cfg.validate()

    def test_event_history(self, monkeypatch):
        cfg = BallotConfig.from_dict({"engine": {"admin": ADMIN}})
        assert cfg.engine.event_history == 0
        monkeypatch.setenv("BALLOTBOX_EVENT_HISTORY", "500")
        cfg.apply_env()
        assert cfg.engine.event_history == 500
        cfg.engine.event_history = -1
        with pytest.raises(ConfigError, match="event_history"):
            cfg.validate()

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)

    def test_to_dict(self):
        cfg = BallotConfig.from_dict({"engine": {"admin": ADMIN}})
        d = cfg.to_dict()
        assert d["engine"]["admin"] == ADMIN
        assert d["engine"]["voting_duration"] == VOTING_DURATION
        assert d["logging"]["file_output"] is False


# ══════════════════════════════════════════════════════════════════════
#  .ENV SETTINGS
# ══════════════════════════════════════════════════════════════════════


class TestEnvSettings:

    @pytest.mark.parametrize("raw,expected", [
        ("True", True), (" false ", False), ("TRUE", True), ("INFO", "INFO"), ("", ""),
    ])
    def test_parse_bool(self, raw, expected):
        assert parse_bool(raw) == expected

    def test_config_string_keeps_default(self):
        value = ConfigString("DEBUG", "INFO")
        assert value == "DEBUG"
        assert value.default() == "INFO"

    def test_config_bool(self):
        value = ConfigBool(False, True)
        assert value == False  # noqa: E712
        assert str(value) == "False"
        assert value.default() is True

    def test_log_format_has_default(self):
        assert "%(message)s" in LOG_FORMAT.default()


# ══════════════════════════════════════════════════════════════════════
#  LOGGING
# ══════════════════════════════════════════════════════════════════════


class TestTerminalSafeFormatter:

    def test_strips_ansi_and_control_chars(self):
        raw = "\x1b[31mPASSED\x1b[0m\r title\x07"
        assert TerminalSafeFormatter.sanitize(raw) == "PASSED title"

    def test_keeps_plain_text(self):
        assert TerminalSafeFormatter.sanitize("Proposal #1\tok") == "Proposal #1\tok"

    def test_format_sanitizes_record(self):
        formatter = TerminalSafeFormatter(fmt="%(message)s")
        record = logging.LogRecord(
            name="t", level=logging.INFO, pathname="", lineno=0,
            msg="title \x1b[2Jcleared", args=(), exc_info=None,
        )
        assert formatter.format(record) == "title cleared"


class TestLogManager:

    def test_singleton(self):
        assert LogManager() is LogManager()
        assert LogManager().is_configured

    def test_invalid_log_format_falls_back(self):
        assert LogManager.validate_log_format("(message)s") == str(LOG_FORMAT.default())

    def test_valid_log_format_kept(self):
        fmt = "%(levelname)s %(message)s"
        assert LogManager.validate_log_format(fmt) == fmt

    def test_invalid_date_format_falls_back(self):
        assert LogManager.validate_date_format("not a date") != "not a date"

    def test_reconfigure_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "ballotbox.log"
        cfg = BallotConfig.from_dict({
            "logging": {"level": "INFO", "file": str(log_file), "console": False, "file_output": True},
        })
        try:
            cfg.logging.apply()
            get_logger("ballotbox.test").info("written to disk")
            for handler in logging.getLogger().handlers:
                handler.flush()
            assert "written to disk" in log_file.read_text(encoding="utf-8")
        finally:
            LogManager().reconfigure()


class TestHighlighter:

    def _styles(self, message):
        text = Text(message)
        BallotLogHighlighter().highlight(text)
        return [(str(span.style), message[span.start:span.end]) for span in text.spans]

    def test_highlights_proposal_and_event(self):
        styles = self._styles("ProposalExecuted: #4 PASSED (yes=2 no=1)")
        assert ("ballot.event", "ProposalExecuted") in styles
        assert ("ballot.proposal", "#4") in styles
        assert ("ballot.outcome_passed", "PASSED") in styles

    def test_quoted_title_not_highlighted(self):
        message = "ProposalCreated: #1 'PASSED #9 by 0x" + "ab" * 20 + "' by someone"
        styles = self._styles(message)
        assert ("ballot.proposal", "#1") in styles
        assert all(fragment not in ("PASSED", "#9") for _, fragment in styles)
        assert not any(style == "ballot.identity" for style, _ in styles)

    @pytest.mark.parametrize("title", [
        "it's PASSED",
        "say \"PASSED\" it's #9",
        "PASSED\\' by 0x" + "ab" * 20,
    ])
    def test_title_with_quotes_not_highlighted(self, title):
        message = f"ProposalCreated: #1 {title!r} by someone"
        styles = self._styles(message)
        assert ("ballot.proposal", "#1") in styles
        assert not any(style in ("ballot.outcome_passed", "ballot.identity") for style, _ in styles)
        assert ("ballot.proposal", "#9") not in styles

    def test_engine_logs_title_as_literal(self, caplog):
        engine = VotingEngine(admin=ADMIN)
        engine.register_voter(ADMIN, now=0)
        with caplog.at_level(logging.INFO, logger="ballotbox.governance.voting"):
            engine.create_proposal("it's PASSED", "desc", ADMIN, now=0)
        message = next(r.getMessage() for r in caplog.records if "ProposalCreated" in r.getMessage())
        assert "\"it's PASSED\"" in message
        styles = self._styles(message)
        assert not any(style == "ballot.outcome_passed" for style, _ in styles)
        assert ("ballot.identity", ADMIN) in styles


class TestRejectionLogging:

    def test_rejections_logged(self, caplog):
        engine = VotingEngine(admin=ADMIN)
        with caplog.at_level(logging.WARNING, logger="ballotbox.governance.voting"):
            with pytest.raises(Exception):
                engine.execute_proposal(1, 0, "someone-else")
        assert any("Rejected [Unauthorized]" in r.getMessage() for r in caplog.records)
