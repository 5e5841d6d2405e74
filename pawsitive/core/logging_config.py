"""
Logging setup shared by the API server and the sync engine.

Console lines are coloured by level; the log file holds one JSON object per
record. Phone numbers, credentials and photo payloads are scrubbed from
structured fields before anything is written.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


# Keys whose values never reach the logs verbatim
SENSITIVE_KEYS = ['phone', 'to', 'token', 'secret', 'auth_token', 'api_key', 'authorization']

# Photo payloads are base64 data URIs, often 30-50KB each
PHOTO_PREVIEW_LENGTH = 32

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
PLAIN_FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that flood DEBUG output (Firestore listener threads, HTTP clients)
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "google", "grpc", "uvicorn.access")


class ColoredFormatter(logging.Formatter):
    """Console formatter with the level name coloured per severity."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # Other handlers share the record, so colour a copy
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        colored.levelname = f"{color}{record.levelname:8s}{self.RESET}"
        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """File formatter: one JSON object per line, structured fields inlined."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        extra_fields = getattr(record, 'extra_fields', None)
        if extra_fields:
            entry.update(filter_sensitive_data(extra_fields))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(path: str, level: int, json_format: bool) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8'
    )
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(config: Any) -> None:
    """
    Configure the root logger from a Settings object.

    Args:
        config: Settings object with log_level, log_console_enabled, log_file_enabled,
            log_file_path and log_json_format attributes
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    if config.log_console_enabled:
        root.addHandler(_console_handler(level))
    if config.log_file_enabled:
        root.addHandler(_file_handler(config.log_file_path, level, config.log_json_format))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        f"Logging initialized: level={config.log_level.upper()}, "
        f"console={config.log_console_enabled}, file={config.log_file_enabled}"
    )


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adds fixed structured fields, such as the session id, to every record.

    Usage:
        log = LoggerAdapter(logging.getLogger(__name__), {"session_id": "SARAH-42"})
        log.info("Saved")  # JSON output includes session_id
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.setdefault('extra', {})
        extra['extra_fields'] = {**self.extra, **extra.get('extra_fields', {})}
        return msg, kwargs


def filter_sensitive_data(data: Any, sensitive_keys: Optional[list] = None) -> Any:
    """
    Mask contact details and credentials in log data.

    Returns a copy with sensitive values replaced by "***FILTERED***" and
    encoded photos shortened.
    """
    keys = SENSITIVE_KEYS if sensitive_keys is None else sensitive_keys

    if isinstance(data, dict):
        return {
            key: "***FILTERED***" if str(key).lower() in keys else filter_sensitive_data(value, keys)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [filter_sensitive_data(item, keys) for item in data]
    if isinstance(data, str):
        return redact_photo(data)
    return data


def redact_photo(value: str) -> str:
    """Shorten a base64 data URI to a short preview; other strings pass through."""
    if value.startswith("data:image/") and len(value) > PHOTO_PREVIEW_LENGTH:
        return f"{value[:PHOTO_PREVIEW_LENGTH]}... ({len(value)} chars)"
    return value


def truncate_large_data(data: str, max_length: int = 5000) -> str:
    """Cut long strings so a single log line stays bounded."""
    if len(data) <= max_length:
        return data
    return f"{data[:max_length]}... (truncated, total length: {len(data)})"
