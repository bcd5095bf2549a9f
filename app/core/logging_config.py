from __future__ import annotations

import logging
from logging.config import dictConfig

from app.core.config import Settings

# Client libraries that log request details; user text must not reach the logs through them.
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine")


def configure_logging(settings: Settings) -> None:
    if settings.log_json:
        log_format = (
            '{"level":"%(levelname)s","time":"%(asctime)s","logger":"%(name)s","message":"%(message)s"}'
        )
    else:
        log_format = "%(levelname)s %(asctime)s %(name)s %(message)s"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": log_format},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                },
            },
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "root": {
                "level": settings.log_level,
                "handlers": ["default"],
            },
        }
    )

    logging.getLogger("uvicorn.error").setLevel(settings.log_level)
