"""
Secure Logging Module
=====================

Provides security-aware logging with secret filtering.

Security Features:
- Automatic secret/sensitive data filtering (keys, tokens, sealed ciphertexts)
- Rotating log files with size limits
- Structured JSON output with a configurable timestamp key
- No debug information leakage
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Pattern
import json

from vaultutils.core.config import LoggingConfig
from vaultutils.errors import InternalError


# Patterns for key and token material
_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("token", re.compile(r'(?i)\b(token|bearer)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("key", re.compile(r'(?i)\b(secret[_-]?key|secret|key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    # Sealed tokens are base64url runs of at least 38 chars
    ("sealed", re.compile(r'[A-Za-z0-9_-]{38,}')),
    # Hex-string keys
    ("hex", re.compile(r'(?i)\b(?:0x)?[a-f0-9]{32,}\b')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"

_STREAM_TARGETS: Final[frozenset[str]] = frozenset({"stderr", "stdout"})


class SecureLogFilter(logging.Filter):
    """
    Log filter that removes sensitive information from log messages.

    Key assignments, bearer tokens, sealed tokens and hex-string keys
    are replaced with [REDACTED].
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        """
        Initialize the secure log filter.

        Args:
            name: Logger name filter (empty string matches all)
            additional_patterns: Additional regex patterns to redact
        """
        super().__init__(name)
        self._additional_patterns = additional_patterns or []

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact the record in place. Always keeps the record."""
        if record.msg and isinstance(record.msg, str):
            record.msg = self._sanitize(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize(v) if isinstance(v, str) else v
                               for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _sanitize(self, text: str) -> str:
        """Remove sensitive data from text."""
        result = text

        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)

        for pattern in self._additional_patterns:
            result = pattern.sub(_REDACTED_TEXT, result)

        return result


class StructuredLogFormatter(logging.Formatter):
    """
    Formatter that outputs logs in JSON format for easy parsing.

    Useful for log aggregation systems and security monitoring.
    """

    def __init__(self, time_key: str = "timestamp") -> None:
        super().__init__()
        self.time_key = time_key

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_data = {
            self.time_key: datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class SecureRotatingFileHandler(RotatingFileHandler):
    """
    Rotating file handler with additional security features.

    Features:
    - Optionally creates the log directory
    - Prevents path traversal attacks
    """

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,  # 10 MB default
        backupCount: int = 5,
        encoding: str = "utf-8",
        create_dirs: bool = True,
    ) -> None:
        """
        Initialize the secure rotating file handler.

        Args:
            filename: Path to the log file
            mode: File mode (default: append)
            maxBytes: Maximum file size before rotation
            backupCount: Number of backup files to keep
            encoding: File encoding
            create_dirs: Create missing parent directories

        Raises:
            ValueError: If the path contains traversal sequences
            OSError: If the file cannot be opened
        """
        if ".." in Path(filename).parts:
            raise ValueError("Log path cannot contain path traversal sequences")

        log_path = Path(filename).resolve()

        if create_dirs:
            log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(log_path),
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
        )


def _make_handler(target: str, config: LoggingConfig) -> logging.Handler:
    if target.lower() in _STREAM_TARGETS:
        # Looked up per call so redirected streams are honoured
        return logging.StreamHandler(getattr(sys, target.lower()))
    # Files are opened where configured; a missing directory is an error
    return SecureRotatingFileHandler(
        filename=target,
        maxBytes=config.max_file_size_bytes,
        backupCount=config.backup_count,
        create_dirs=False,
    )


def build_logger(name: str, config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Build a logger from configuration, replacing any handlers it had.

    Args:
        name: Logger name (typically the service or module name)
        config: Logging settings (default: LoggingConfig())

    Returns:
        Configured logger with secret filtering on every handler

    Raises:
        InternalError: If an output path cannot be opened
    """
    config = config or LoggingConfig()

    if config.json_output:
        formatter: logging.Formatter = StructuredLogFormatter(time_key=config.time_key)
    else:
        formatter = logging.Formatter(config.format, datefmt=config.date_format)

    secure_filter = SecureLogFilter()
    handlers: list[logging.Handler] = []
    try:
        for target in config.output_paths:
            handler = _make_handler(target, config)
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(formatter)
            handler.addFilter(secure_filter)
            handlers.append(handler)
    except (OSError, ValueError) as e:
        for handler in handlers:
            handler.close()
        raise InternalError("could not build logger", original=e) from e

    logger = logging.getLogger(name)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.setLevel(getattr(logging, config.level.upper()))
    for handler in handlers:
        logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Create a secure logger with automatic secret filtering.

    Returns the existing logger untouched if it already has handlers.

    Args:
        name: Logger name (typically __name__)
        log_dir: Directory for log files (created if missing; no file output if None)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Whether to output to stderr
        enable_json: Whether to use JSON format
        max_file_size: Maximum log file size before rotation
        backup_count: Number of backup files to keep
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    output_paths: list[str] = []
    if enable_console:
        output_paths.append("stderr")
    if log_dir is not None:
        log_dir = Path(log_dir)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InternalError("could not build logger", original=e) from e
        output_paths.append(str(log_dir / f"{name.replace('.', '_')}.log"))

    if not output_paths:
        # Silenced loggers must not hand unfiltered records to the root logger
        logger.addHandler(logging.NullHandler())
        logger.propagate = False
        return logger

    return build_logger(
        name,
        LoggingConfig(
            level=level.upper(),
            json_output=enable_json,
            output_paths=tuple(output_paths),
            max_file_size_bytes=max_file_size,
            backup_count=backup_count,
        ),
    )
