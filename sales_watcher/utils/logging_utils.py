import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_logging_config(log_level: str = "INFO", log_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Build a ``logging.config.dictConfig`` mapping.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a rotating log file (10 MB, 5 backups)

    Returns:
        The dictConfig mapping
    """
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "standard",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 10485760,  # 10 MB
            "backupCount": 5,
            "encoding": "utf8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers),
                "level": log_level,
                "propagate": True,
            },
            # Statement logging is controlled by Database(echo=...)
            "sqlalchemy.engine": {
                "level": "WARNING",
            },
        },
    }


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging for the application."""
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_level.upper(), log_file))
