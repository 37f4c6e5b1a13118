"""Structured logging helpers."""
import json
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler

logger = logging.getLogger("askrelay")


def _file_logging_enabled() -> bool:
    return os.getenv("LOG_TO_FILE", "True").lower() in ("1", "true", "yes", "on")


def _build_rotating_handler(log_dir: str, filename: str) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    max_mb = float(os.getenv("LOG_FILE_MAX_MB", "10"))
    backup_count = max(1, int(os.getenv("LOG_FILE_BACKUPS", "5")))
    max_bytes = max(1, int(max_mb * 1024 * 1024))
    handler = RotatingFileHandler(
        os.path.join(log_dir, filename),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def setup_logging(level: str, log_dir: str | None = None) -> None:
    """Configure root logging level and handlers."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir and _file_logging_enabled():
        try:
            handlers.append(_build_rotating_handler(log_dir, "askrelay.log"))
        except OSError as exc:
            print(f"[askrelay] file logging disabled: {exc}", file=sys.stderr)
    # Force handlers so the hosting platform always captures stdout.
    logging.basicConfig(level=numeric, handlers=handlers, force=True)


def log_event(level: int, message: str, **fields) -> None:
    """Emit a structured log line."""
    payload = {"message": message, "ts": int(time.time())}
    payload.update(fields)
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
