"""Logging setup: JSON lines in production, plain text elsewhere."""
import logging
import sys

from pythonjsonlogger import jsonlogger

from catalog.core.config import settings

# Chatty libraries kept at WARNING unless explicitly asked for.
_QUIET_LOGGERS = ("sqlalchemy.engine", "multipart", "python_multipart")


def setup_logging() -> None:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if settings.APP_ENV == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                "%(asctime)s %(name)s %(levelname)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
        logging.root.handlers = [handler]
        logging.root.setLevel(level)
    else:
        logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    for name in _QUIET_LOGGERS:
        if not (settings.DB_ECHO and name == "sqlalchemy.engine"):
            logging.getLogger(name).setLevel(logging.WARNING)
