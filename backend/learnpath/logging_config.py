import logging
import os
from logging.config import dictConfig
from typing import Any, Dict, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
TELEMETRY_LOG_FORMAT = "%(asctime)s %(message)s"


def _flag(name: str) -> bool:
    return os.getenv(name, "0") == "1"


def build_logging_config(
    level: str = "INFO",
    *,
    debug_http: bool = False,
    debug_sql: bool = False,
) -> Dict[str, Any]:
    """dictConfig payload: one stream handler for the engine, a bare one for telemetry lines."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": DEFAULT_LOG_FORMAT},
            "telemetry": {"format": TELEMETRY_LOG_FORMAT},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
            "telemetry": {
                "class": "logging.StreamHandler",
                "formatter": "telemetry",
            },
        },
        "loggers": {
            "learnpath.telemetry": {
                "handlers": ["telemetry"],
                "level": level,
                "propagate": False,
            },
            "httpx": {"level": "DEBUG" if debug_http else "WARNING"},
            "sqlalchemy.engine": {"level": "INFO" if debug_sql else "WARNING"},
        },
        "root": {
            "handlers": ["default"],
            "level": level,
        },
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Configure process logging; ``LEARNPATH_LOG_LEVEL`` applies when no level is passed."""
    resolved = (level or os.getenv("LEARNPATH_LOG_LEVEL", "INFO")).upper()
    if not isinstance(logging.getLevelName(resolved), int):
        resolved = "INFO"
    dictConfig(
        build_logging_config(
            resolved,
            debug_http=_flag("LEARNPATH_DEBUG_HTTP"),
            debug_sql=_flag("LEARNPATH_DEBUG_SQL"),
        )
    )
