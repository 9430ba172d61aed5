"""
BallotBox Logging System
========================

Thread-safe logging for BallotBox built on the standard `logging` module and
`rich`. Settings come from `.env` (see constants.LOGGER_DEFAULTS) and can be
replaced at runtime from ballotbox.toml through `LogManager.reconfigure`.

Usage:
    >>> from ballotbox.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Engine started")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional, List, Tuple

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


LOG_FILE_PATH = Path(__file__).parent.parent / "logs" / "ballotbox.log"

BALLOT_THEME = Theme(
    {
        "ballot.arrow":           "bold yellow",
        "ballot.event":           "bold magenta",
        "ballot.identity":        "cyan",
        "ballot.level_error":     "bold red",
        "ballot.level_info":      "bold green",
        "ballot.level_warning":   "bold yellow",
        "ballot.logger_name":     "magenta",
        "ballot.outcome_passed":  "bold green",
        "ballot.outcome_failed":  "bold red",
        "ballot.proposal":        "bold white",
        "ballot.rejected":        "bold red",
        "ballot.timestamp":       "bold cyan",
    }
)

# "%(name)s"-style specifiers; group 1 is the leading '%' (empty when missing)
_SPECIFIER_RE = re.compile(r"(%?)\([a-zA-Z_]\w*\)[a-zA-Z]")


def _fallback(what: str, setting) -> str:
    print(
        f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - ballotbox.logger - "
        f"Invalid {what}. Using default.",
        file=sys.stderr,
    )
    return str(setting.default())


class LogManager:
    """
    Singleton owner of the root logger's handlers.

    Configuration happens once, on first use; `reconfigure` replaces it.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()


    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._configured = False
        return cls._instance


    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Returns *log_format* if every specifier is well formed and a record
        formats cleanly with it, otherwise the default `LOG_FORMAT`.
        """
        log_format = str(log_format or "")
        specifiers = _SPECIFIER_RE.findall(log_format)
        if not specifiers or not all(specifiers):
            return _fallback("log format", LOG_FORMAT)

        record = logging.LogRecord(
            name="check", level=logging.INFO, pathname="", lineno=0,
            msg="check", args=(), exc_info=None,
        )
        try:
            logging.Formatter(fmt=log_format).format(record)
        except (ValueError, KeyError, TypeError):
            return _fallback("log format", LOG_FORMAT)
        return log_format


    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """Returns *date_format* if it holds at least one strftime directive."""
        date_format = str(date_format or "")
        if "%" not in date_format.replace("%%", ""):
            return _fallback("date format", LOG_DATE_FORMAT)
        try:
            time.strftime(date_format)
        except ValueError:
            return _fallback("date format", LOG_DATE_FORMAT)
        return date_format


    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Installs console and (optionally) rotating file handlers on the root logger.

        Args:
            log_level: Logging level name. Defaults to `.env` LOG_LEVEL.
            log_file: Log file path. Defaults to `logs/ballotbox.log`.
            console_output: Enable console logging.
            file_output: Enable file logging. Defaults to `.env` LOG_FILE_OUTPUT.
        """
        with self._lock:
            if self._configured:
                return

            numeric_level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)

            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)
            root_logger.handlers.clear()

            # UTC timestamps regardless of host timezone
            formatter = TerminalSafeFormatter(
                fmt=self.validate_log_format(LOG_FORMAT),
                datefmt=self.validate_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            handlers: List[logging.Handler] = []
            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    handlers.append(RichHandler(
                        console=Console(theme=BALLOT_THEME, highlight=False),
                        highlighter=BallotLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    ))
                else:
                    handlers.append(logging.StreamHandler(sys.stdout))

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            if file_output:
                log_file_path = Path(log_file) if log_file else LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)
                handlers.append(logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                ))

            for handler in handlers:
                handler.setLevel(numeric_level)
                handler.setFormatter(formatter)
                root_logger.addHandler(handler)

            self._configured = True


    def reconfigure(self, **kwargs) -> None:
        """Drops the current handlers and calls `configure(**kwargs)`."""
        with self._lock:
            self._configured = False
        self.configure(**kwargs)


    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Strips ANSI escape sequences and control characters from every record.

    Titles, descriptions and identities are caller-supplied and end up in
    terminals and log files verbatim otherwise.
    """

    # ANSI CSI sequences and single-character ESC sequences
    _ansi_escape_re = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
    # Control chars except Tab and Newline
    _control_chars_re = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")


    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        return cls._control_chars_re.sub("", text)


    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class BallotLogHighlighter(RegexHighlighter):
    """
    Colors proposal numbers, identities, event names and outcomes.

    Proposal titles are logged in their repr() form. Spans that fall inside a
    quoted string literal are dropped, so a title cannot fake an outcome or an
    identity.
    """

    base_style = "ballot."
    highlights = [
        r"(?P<arrow>(\-\->)|(<--)|(→))",
        r"(?P<event>\b(VoterRegistered|ProposalCreated|VoteCast|ProposalExecuted|AdminTransferred)\b)",
        r"(?P<identity>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<level_error>\b(ERROR|CRITICAL)\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<outcome_passed>\bPASSED\b)",
        r"(?P<outcome_failed>\bDEFEATED\b)",
        r"(?P<proposal>#\d+)",
        r"(?P<rejected>\bRejected\b)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]

    # Python string literals as produced by repr(): '...' or "...", backslash escapes
    _string_literal_re = re.compile(r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"")


    @classmethod
    def _get_protected_segments(cls, s: str) -> List[Tuple[int, int]]:
        """(start, end) of every quoted string literal in *s*."""
        return [m.span() for m in cls._string_literal_re.finditer(s)]


    def highlight(self, text) -> None:
        super().highlight(text)

        protected = self._get_protected_segments(text.plain)
        if not protected or not text.spans:
            return

        text.spans = [
            span for span in text.spans
            if not any(span.start < end and span.end > start for start, end in protected)
        ]


_manager = LogManager()

def get_logger(name: str) -> logging.Logger:
    """Logger for *name*, configuring the logging system on first use."""
    return _manager.get_logger(name)

# Auto-configure on import
_manager.configure()
