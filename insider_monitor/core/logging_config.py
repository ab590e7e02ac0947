"""Process-wide logging setup.

Log messages are written as ``event_name key=value ...``. The JSON formatter
splits that shape into an ``event`` field and a ``fields`` object so log
pipelines can filter on ``event`` without parsing the message.
"""
import json
import logging
import logging.config
from datetime import datetime, timezone

from ..settings import settings

_CONFIGURED = False

# Libraries that are only interesting when debugging.
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error")

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def parse_event(message: str) -> tuple[str, dict[str, str]]:
    """Split ``"refresh_completed name=polymarket"`` into its event and fields.

    Tokens without ``=`` after the first one are ignored.
    """
    head, _, rest = message.partition(" ")
    fields: dict[str, str] = {}
    for token in rest.split():
        key, sep, value = token.partition("=")
        if sep and key:
            fields[key] = value
    return head, fields


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        try:
            message = record.getMessage()
        except TypeError:
            message = str(record.msg)
        event, fields = parse_event(message)
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": event,
            "message": message,
        }
        if fields:
            payload["fields"] = fields
        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS and not k.startswith("_")}
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def root_level() -> int:
    level = logging.getLevelName(str(settings.LOG_LEVEL or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO
    if settings.ENV.lower() == "prod":
        level = max(level, logging.INFO)
    return level


def build_logging_config(level: int, json_output: bool) -> dict:
    quiet = level if level <= logging.DEBUG else max(level, logging.WARNING)
    loggers: dict[str, dict] = {name: {"level": quiet, "propagate": True} for name in NOISY_LOGGERS}
    for name in UVICORN_LOGGERS:
        loggers[name] = {"level": level, "handlers": ["default"], "propagate": False}
    loggers["uvicorn.access"] = {
        "level": logging.INFO if level <= logging.DEBUG else max(level, logging.WARNING),
        "handlers": ["default"],
        "propagate": False,
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_output else "plain",
            },
        },
        "root": {"level": level, "handlers": ["default"]},
        "loggers": loggers,
    }


def configure_logging() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    logging.config.dictConfig(build_logging_config(root_level(), settings.LOG_JSON))
    _CONFIGURED = True
