"""Keystone - Logging Configuration.

Console logging for the bootstrap process and the embedded server.
"""

import logging
import logging.config
import sys
from typing import Any

from keystone.startup.config_schema import KeystoneConfig


def setup_logging(config: KeystoneConfig | None = None) -> None:
    """Configure logging for the application based on settings."""
    config = config or KeystoneConfig()
    level = config.log_level.value

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": (
                    "%(asctime)s | %(name)s | %(levelname)s | "
                    "%(filename)s:%(lineno)d | %(funcName)s | %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if config.debug else "simple",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "keystone": {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {"level": level, "handlers": ["console"]},
    }

    logging.config.dictConfig(logging_config)
    logging.getLogger(__name__).debug("Logging configured with level %s", level)
