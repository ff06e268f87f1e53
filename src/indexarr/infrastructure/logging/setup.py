"""structlog + stdlib logging wiring for the CLI and the uvicorn server."""

from __future__ import annotations

import atexit
import copy
import logging
import logging.config
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Optional

import structlog

from indexarr.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)


UVICORN_LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {},
    "handlers": {
        "default": {
            "formatter": "structlog",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "access": {
            "formatter": "structlog",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "uvicorn": {"handlers": ["default"], "propagate": False},
        "uvicorn.error": {},
        "uvicorn.access": {"handlers": ["access"], "propagate": False},
        "httpx": {},
    },
}

# httpx logs every request at INFO; session.py already does that at DEBUG.
_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")

_QUEUE_LISTENER: Optional[QueueListener] = None


def _drop_color_message(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.pop("color_message", None)
    return event_dict


def _record_timestamp(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp foreign records with their creation time, not formatting time."""
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = created.isoformat().replace("+00:00", "Z")
    return event_dict


def _renderer(config: AppConfig) -> structlog.typing.Processor:
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _foreign_pre_chain() -> list[structlog.typing.Processor]:
    return [
        _drop_color_message,
        structlog.contextvars.merge_contextvars,
        _record_timestamp,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]


def _processor_formatter(config: AppConfig) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_foreign_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(config),
        ],
    )


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """uvicorn-compatible dictConfig rendering every record through structlog."""
    cfg = copy.deepcopy(UVICORN_LOGGING_CONFIG)
    cfg["formatters"]["structlog"] = {
        "()": structlog.stdlib.ProcessorFormatter,
        "foreign_pre_chain": _foreign_pre_chain(),
        "processors": [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(config),
        ],
    }
    for name, logger_cfg in cfg["loggers"].items():
        logger_cfg["level"] = "WARNING" if name in _QUIET_LOGGERS else config.log_level
    cfg["root"] = {"handlers": ["default"], "level": config.log_level}
    return cfg


class _LevelRange(logging.Filter):
    def __init__(self, low: int, high: int) -> None:
        super().__init__()
        self._low = low
        self._high = high

    def filter(self, record: logging.LogRecord) -> bool:
        return self._low <= record.levelno <= self._high


class _StructlogQueueHandler(QueueHandler):
    """QueueHandler that keeps structlog's dict ``record.msg`` intact."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        return copy.copy(record)


def _stop_listener() -> None:
    global _QUEUE_LISTENER
    if _QUEUE_LISTENER is not None:
        try:
            _QUEUE_LISTENER.stop()
        finally:
            _QUEUE_LISTENER = None


def _enable_queue_logging(config: AppConfig, *, split_streams: bool = True) -> None:
    """Emit all stdlib records from a background QueueListener thread.

    DEBUG..WARNING go to stdout, ERROR and above to stderr. Without
    *split_streams* everything goes to stderr so stdout carries only
    command output.
    """
    global _QUEUE_LISTENER
    _stop_listener()

    formatter = _processor_formatter(config)

    info_handler = logging.StreamHandler(
        stream=sys.stdout if split_streams else sys.stderr
    )
    info_handler.setFormatter(formatter)
    info_handler.addFilter(_LevelRange(logging.NOTSET, logging.WARNING))

    error_handler = logging.StreamHandler(stream=sys.stderr)
    error_handler.setFormatter(formatter)
    error_handler.addFilter(_LevelRange(logging.ERROR, logging.CRITICAL))

    records: queue.Queue[logging.LogRecord] = queue.Queue()

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_StructlogQueueHandler(records))
    root.setLevel(config.log_level)

    for name in list(logging.root.manager.loggerDict):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        if name.split(".")[0] in _QUIET_LOGGERS:
            level = logging.getLevelName(config.log_level)
            logger.setLevel(max(logging.WARNING, level))
        else:
            logger.setLevel(config.log_level)

    _QUEUE_LISTENER = QueueListener(
        records, info_handler, error_handler, respect_handler_level=True
    )
    _QUEUE_LISTENER.start()
    atexit.register(_stop_listener)


def configure_logging(
    config: AppConfig, *, split_streams: bool = True
) -> dict[str, Any]:
    """
    Configure structlog + stdlib logging.

    Returns the dictConfig handed to uvicorn; actual emission goes through
    the queue listener installed afterwards.
    """
    structlog.configure(
        processors=[
            _drop_color_message,
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    cfg = build_logging_config(config)
    logging.config.dictConfig(cfg)
    _enable_queue_logging(config, split_streams=split_streams)

    log.info(
        "logging_configured", log_format=config.log_format, log_level=config.log_level
    )
    return cfg
