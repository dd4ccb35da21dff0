from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

LOG_FILE_NAME = "unified_inbox.log"
# Third-party loggers that are too chatty at INFO during a fetch cycle.
QUIET_LOGGERS = ("googleapiclient.discovery", "googleapiclient.discovery_cache", "google.auth")


def build_logging_config(log_path: Path, level: str = "INFO") -> Dict[str, Any]:
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "console": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filename": str(log_path),
                "maxBytes": 1_000_000,
                "backupCount": 3,
                "encoding": "utf-8",
            },
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "console",
            },
        },
        "loggers": {
            name: {"level": "WARNING" if level != "DEBUG" else level} for name in QUIET_LOGGERS
        },
        "root": {
            "handlers": ["file", "stdout"],
            "level": level,
        },
    }


def configure_logging(log_dir: Path, level: str = "INFO") -> Path:
    """Send logs to the console and a rotating file under ``log_dir``."""

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    logging.config.dictConfig(build_logging_config(log_path, level))
    logging.getLogger(__name__).debug("Logging configured at %s", level)
    return log_path
