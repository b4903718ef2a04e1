import logging
import os
import sys
from logging.config import dictConfig
from stockroom.core.config import APP_ENV

LOG_LEVEL = os.getenv(
    "LOG_LEVEL",
    "DEBUG" if APP_ENV == "development" else "INFO",
).upper()

ACCESS_FIELDS = ("client_addr", "method", "path", "status_code", "process_time_ms")


class AccessFieldsFilter(logging.Filter):
    """Fill in access fields so a stray record never breaks the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in ACCESS_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        return True


def setup_logging():
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,

            # -----------------
            # FILTERS
            # -----------------
            "filters": {
                "access_fields": {"()": AccessFieldsFilter},
            },

            # -----------------
            # FORMATTERS
            # -----------------
            "formatters": {
                "default": {
                    "format": (
                        "%(asctime)s | %(levelname)s | "
                        "%(name)s | %(message)s"
                    ),
                },
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | "
                        "%(client_addr)s | %(method)s | "
                        "%(path)s | %(status_code)s | "
                        "%(process_time_ms)sms"
                    ),
                },
            },

            # -----------------
            # HANDLERS
            # -----------------
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
                "access_console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "access",
                    "filters": ["access_fields"],
                },
            },

            # -----------------
            # LOGGERS
            # -----------------
            "loggers": {
                # Used by request_logging_middleware
                "access": {
                    "handlers": ["access_console"],
                    "level": "INFO",
                    "propagate": False,
                },
                "sqlalchemy.engine": {"level": "WARNING"},
                "apscheduler": {"level": "INFO"},
                "aiosqlite": {"level": "WARNING"},
            },

            # -----------------
            # ROOT LOGGER
            # -----------------
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["console"],
            },
        }
    )
