"""
Secure Logging Module
=====================

Logging for the "passtable" logger tree with secret redaction.

The library itself never logs record contents, passphrases or
ciphertext. SecureLogFilter is the safety net for host messages: anything
shaped like "passphrase=...", "password: ..." or a long base64 run (a
vault blob) is replaced before a handler sees it.
"""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Final, Iterable, Optional, Pattern

from passtable.core.config import PasstableConfig

_REDACTED: Final[str] = "[REDACTED]"

# (label, pattern); a match is replaced by "<label>=[REDACTED]"
_SECRET_PATTERNS: Final[tuple[tuple[str, Pattern[str]], ...]] = (
    ("passphrase", re.compile(r'(?i)(primary[_-]?pass(phrase)?|passphrase)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("password", re.compile(r'(?i)(password|passwd|pwd)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)(secret|token)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("blob", re.compile(r'[A-Za-z0-9+/]{40,}={0,2}')),
)

_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


def redact(text: str, extra: Iterable[Pattern[str]] = ()) -> str:
    """Replace everything in text that looks like a secret."""
    for label, pattern in _SECRET_PATTERNS:
        text = pattern.sub(f"{label}={_REDACTED}", text)
    for pattern in extra:
        text = pattern.sub(_REDACTED, text)
    return text


class SecureLogFilter(logging.Filter):
    """
    Redacts secrets from the message and its string arguments.

    Records are rewritten in place and never dropped.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._extra = tuple(additional_patterns or ())

    def _scrub(self, value: Any) -> Any:
        return redact(value, self._extra) if isinstance(value, str) else value

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._scrub(record.msg)

        if isinstance(record.args, dict):
            record.args = {key: self._scrub(value) for key, value in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._scrub(arg) for arg in record.args)

        return True


class SecureRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that rejects ".." in its path and creates the directory."""

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,
        backupCount: int = 5,
        encoding: str = "utf-8",
    ) -> None:
        if ".." in Path(filename).parts:
            raise ValueError("Log path cannot contain path traversal sequences")

        path = Path(filename).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(str(path), mode=mode, maxBytes=maxBytes, backupCount=backupCount, encoding=encoding)


def _attach(logger: logging.Logger, handler: logging.Handler, fmt: str, datefmt: str,
            secure_filter: SecureLogFilter) -> None:
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    handler.addFilter(secure_filter)
    logger.addHandler(handler)


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Return the named logger with redacting handlers attached.

    Handlers are only attached the first time; later calls return the
    logger unchanged. The file handler writes <name with dots as
    underscores>.log inside log_dir and is skipped without a log_dir.

    Args:
        name: Logger name, "passtable" or one of its children
        log_dir: Directory for the rotating log file
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        enable_console: Log to stderr
        enable_file: Log to a rotating file in log_dir
        max_file_size: Bytes before the file rotates
        backup_count: Rotated files to keep
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level.upper())
    secure_filter = SecureLogFilter()

    if enable_console:
        _attach(logger, logging.StreamHandler(sys.stderr), _CONSOLE_FORMAT, "%H:%M:%S", secure_filter)

    if enable_file and log_dir is not None:
        handler = SecureRotatingFileHandler(
            Path(log_dir) / f"{name.replace('.', '_')}.log",
            maxBytes=max_file_size,
            backupCount=backup_count,
        )
        _attach(logger, handler, _FILE_FORMAT, "%Y-%m-%d %H:%M:%S", secure_filter)

    logger.propagate = False
    return logger


def configure_logging(config: Optional[PasstableConfig] = None) -> logging.Logger:
    """
    Set up the "passtable" logger from configuration. Call once at startup.

    Children such as "passtable.vault" and "passtable.web" log through its
    handlers.
    """
    config = config or PasstableConfig.get_instance()
    settings = config.logging

    return get_secure_logger(
        "passtable",
        log_dir=config.paths.log_dir,
        level=settings.level,
        enable_console=settings.enable_console,
        enable_file=settings.enable_file,
        max_file_size=settings.max_file_size_bytes,
        backup_count=settings.backup_count,
    )
