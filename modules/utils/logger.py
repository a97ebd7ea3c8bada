"""
Logging setup from the `logging:` config section, plus the session event
log and a timing decorator.

Console output follows the configured level; the optional rotating file
always records DEBUG. Per-logger levels (`logging.loggers`) quiet chatty
libraries such as urllib3 or raise verbosity for a single module.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s  %(levelname)-5s  %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def _level(name, default=logging.INFO) -> int:
    return getattr(logging, str(name).upper(), default)


def setup_logging(log_config: dict, level: Optional[str] = None):
    """Configure the root logger from a `logging:` config section.

    Args:
        log_config: level, file, max_size_mb, backup_count and loggers keys
        level: overrides log_config["level"] (e.g. from --log-level)
    """
    root_level = _level(level or log_config.get("level", "INFO"))
    log_file = log_config.get("file")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else root_level)
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=log_config.get("max_size_mb", 10) * 1024 * 1024,
            backupCount=log_config.get("backup_count", 3),
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name, name_level in (log_config.get("loggers") or {}).items():
        logging.getLogger(name).setLevel(_level(name_level, logging.WARNING))

    return root_logger


class SessionLogger:
    """Logs parameter commits and generation outcomes for a session."""

    def __init__(self, max_history: int = 200):
        self.logger = logging.getLogger("session_events")
        self._history = []
        self._max_history = max_history

    def _record(self, entry: dict):
        entry["timestamp"] = time.time()
        self._history.append(entry)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def log_parameter(self, path, value, success=True, source="gesture"):
        """Log a committed (or rejected) parameter change."""
        self._record({"event": "parameter", "path": path, "value": value,
                      "success": success, "source": source})
        self.logger.info(
            "Param: %-45s | %-8s | %s%s",
            path,
            source,
            value,
            "" if success else "  (rejected)",
        )

    def log_generation(self, success, detail="", elapsed_s=None):
        """Log a finished generation attempt."""
        self._record({"event": "generation", "success": success,
                      "detail": detail, "elapsed_s": elapsed_s})
        self.logger.info(
            "Generation: %-7s | %s | %s",
            "ok" if success else "failed",
            f"{elapsed_s:.1f}s" if elapsed_s is not None else "N/A",
            detail,
        )

    def get_history(self, last_n=None):
        """Get recent session events."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug("%s took %.2fms", func.__name__, elapsed)

    return wrapper
