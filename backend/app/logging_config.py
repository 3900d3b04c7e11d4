import logging
import os
from logging.config import dictConfig
from typing import Dict

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _library_levels(debug_http: bool) -> Dict[str, Dict[str, str]]:
    # Upstream URLs carry the API token as a query parameter, so httpx stays quiet unless asked.
    http_level = "DEBUG" if debug_http else "WARNING"
    levels = {"httpx": {"level": http_level}, "httpcore": {"level": http_level}}
    if debug_http:
        levels["uvicorn.access"] = {"level": "DEBUG"}
    return levels


def configure_logging() -> None:
    """Configure process logging from SCHEDULE_LOG_LEVEL and SCHEDULE_DEBUG_HTTP."""
    level = os.getenv("SCHEDULE_LOG_LEVEL", "INFO").upper()
    debug_http = os.getenv("SCHEDULE_DEBUG_HTTP", "0") == "1"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": DEFAULT_LOG_FORMAT}},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "default"},
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": _library_levels(debug_http),
        }
    )
    logging.getLogger(__name__).debug("Logging configured at %s (debug_http=%s)", level, debug_http)
