"""
ethcompat Logging System
========================

A thread-safe logging utility for the provider. It configures the standard
``logging`` package once and renders console output through ``rich``.

Usage:
    >>> from ethcompat.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Provider started")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

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


PROJECT_ROOT = Path(__file__).parent.parent
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "ethcompat.log"


class LogManager:
    """
    Manages logging configuration via the Singleton pattern.

    The root logger is configured exactly once, with a Rich console handler
    and, when enabled, a rotating file handler.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._configured = False
        self._initialized = True

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Validates a logging format string by formatting a dummy record.

        Args:
            log_format: The logging format string.

        Returns:
            The format string, or the default ``LOG_FORMAT`` if it is unusable.
        """
        default = str(LOG_FORMAT.default())
        if not log_format:
            return default
        try:
            formatter = logging.Formatter(fmt=str(log_format))
            record = logging.LogRecord(
                name="test", level=logging.INFO, pathname="", lineno=0,
                msg="test", args=(), exc_info=None,
            )
            formatter.format(record)
            return str(log_format)
        except (ValueError, KeyError, TypeError) as e:
            print(
                f"{time.strftime('%Y-%m-%d %H:%M:%S')} - ethcompat.logger - "
                f"Invalid log format ({e}). Using default.",
                file=sys.stderr,
            )
            return default

    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """Accepts strftime formats built from directives and separators only."""
        default = str(LOG_DATE_FORMAT.default())
        if not date_format:
            return default
        pattern = re.compile(r"^(?:%[A-Za-z]|[0-9 \t:\-/.,TZ+])+$")
        if not pattern.match(str(date_format)):
            print(
                f"{time.strftime(default)} - ethcompat.logger - Invalid date format. Using default.",
                file=sys.stderr,
            )
            return default
        return str(date_format)

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Configures the root logger with console and file handlers.

        Args:
            log_level: Logging level name. Defaults to ``LOG_LEVEL`` from ``.env``.
            log_file: Log file path. Defaults to ``logs/ethcompat.log``.
            console_output: Enable console logging.
            file_output: Enable rotating file logging. Defaults to ``LOG_FILE_OUTPUT``.
        """
        with self._lock:
            if self._configured:
                return

            level_str = log_level or LOG_LEVEL
            numeric_level = getattr(logging, str(level_str).upper(), logging.INFO)

            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)

            for lib in ["httpx", "uvicorn.access", "websockets"]:
                logging.getLogger(lib).setLevel(logging.WARNING)

            root_logger.handlers.clear()

            log_format = self.validate_log_format(LOG_FORMAT)
            date_format = self.validate_date_format(LOG_DATE_FORMAT)

            formatter = TerminalSafeFormatter(fmt=log_format, datefmt=date_format + " UTC")
            formatter.converter = time.gmtime

            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    theme = Theme(
                        {
                            "ethcompat.hash":            "cyan",
                            "ethcompat.address":         "bright_cyan",
                            "ethcompat.level_critical":  "bold red reverse",
                            "ethcompat.level_debug":     "bold dim",
                            "ethcompat.level_error":     "bold red",
                            "ethcompat.level_info":      "bold green",
                            "ethcompat.level_warning":   "bold yellow",
                            "ethcompat.logger_name":     "magenta",
                            "ethcompat.rpc_method":      "bold white",
                            "ethcompat.timestamp":       "bold cyan",
                        }
                    )
                    handler = RichHandler(
                        console=Console(theme=theme, highlight=False),
                        highlighter=RPCLogHighlighter(),
                        rich_tracebacks=True,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                else:
                    handler = logging.StreamHandler(sys.stdout)
                handler.setLevel(numeric_level)
                handler.setFormatter(formatter)
                root_logger.addHandler(handler)

            if LOG_FILE_OUTPUT if file_output is None else file_output:
                log_file_path = log_file or LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)

            self._configured = True

    def set_level(self, log_level: str) -> None:
        """Changes the level of the root logger and every attached handler."""
        numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)
        for handler in root_logger.handlers:
            handler.setLevel(numeric_level)

    def get_logger(self, name: str) -> logging.Logger:
        """Returns a standard logger, configuring the system on first use."""
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips ANSI escape sequences and control characters.

    Request parameters end up in log lines, so they must not be able to
    drive the operator's terminal.
    """

    _ansi_escape_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
    )
    # Control chars excluding Tab and Newline
    _control_chars_re = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F\r]")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        return cls._control_chars_re.sub("", text)

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class RPCLogHighlighter(RegexHighlighter):
    """Highlights JSON-RPC method names, ids, addresses and levels."""

    base_style = "ethcompat."
    highlights = [
        r"(?P<hash>\b0x[0-9a-fA-F]{64}\b)",
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<rpc_method>\b(?:eth|net|web3)_[A-Za-z]+\b)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()

def get_logger(name: str) -> logging.Logger:
    """
    Public accessor of the logging system.

    Args:
        name: The name of the module requesting the logger.

    Returns:
        The configured logger instance.
    """
    return _manager.get_logger(name)
