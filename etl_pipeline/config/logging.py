"""Structured logging configuration using structlog."""
import logging
import sys
from typing import Any, Optional

import structlog
from pythonjsonlogger import jsonlogger

from etl_pipeline.config.settings import settings

# Libraries whose INFO output drowns the pipeline's own
NOISY_LOGGERS = ("httpcore", "httpx", "botocore", "boto3", "urllib3", "s3transfer")


def add_pipeline_prefix(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Prefix the event with the bound pipeline and step names.

    ``[pipeline]`` for runner messages, ``[pipeline:step]`` for messages
    logged by a step. Runs before the renderer so both JSON and console
    output carry it.
    """
    pipeline = event_dict.get("pipeline")
    if not pipeline:
        return event_dict

    step = event_dict.get("step")
    prefix = f"{pipeline}:{step}" if step else pipeline
    event_dict["event"] = f"[{prefix}] {event_dict.get('event', '')}"
    return event_dict


def _build_handler(log_format: str, level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(jsonlogger.JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    return handler


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure stdlib logging and structlog for the application.

    Args:
        level: Level name overriding LOG_LEVEL
        log_format: "json" or "console", overriding LOG_FORMAT
    """
    log_level = getattr(logging, (level or settings.logging.level).upper())
    log_format = log_format or settings.logging.format

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(log_format, log_level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_pipeline_prefix,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger for a module.

    Args:
        name: Logger name, typically __name__
    """
    return structlog.get_logger(name)


# Levels structlog may call that a plain leveled logger can lack
_LEVEL_FALLBACKS = {
    "warning": "error",
    "warn": "error",
    "critical": "error",
    "fatal": "error",
    "exception": "error",
    "msg": "info",
}


class _LeveledLogger:
    """Routes level calls to the closest method the wrapped logger has."""

    def __init__(self, logger: Any):
        self._logger = logger

    def __getattr__(self, name: str) -> Any:
        method = getattr(self._logger, name, None)
        if method is None and name in _LEVEL_FALLBACKS:
            method = getattr(self._logger, _LEVEL_FALLBACKS[name], None)
        if method is None:
            raise AttributeError(f"{type(self._logger).__name__} has no method {name}")
        return method


def render_as_message(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> str:
    """Fold the event and its context into one message string.

    ``event key=value ...``, followed by the formatted traceback on its own
    lines when one was attached.
    """
    event = event_dict.pop("event", "")
    exception = event_dict.pop("exception", None)

    message = str(event)
    if event_dict:
        context = " ".join(f"{key}={value}" for key, value in event_dict.items())
        message = f"{message} {context}"
    if exception:
        message = f"{message}\n{exception}"
    return message


def ensure_bound_logger(logger: Any) -> Any:
    """Give any leveled logger the structlog calling convention.

    Loggers that already support ``bind`` are returned as they are. Anything
    else, such as a stdlib ``logging.Logger`` or an object with only
    ``info``/``debug``/``error``, is wrapped so keyword context and ``bind``
    work, with the context folded into the message it receives.

    Args:
        logger: Logger supplied by the caller

    Returns:
        Logger accepting ``bind`` and keyword context
    """
    if callable(getattr(logger, "bind", None)):
        return logger

    return structlog.wrap_logger(
        _LeveledLogger(logger),
        processors=[structlog.processors.format_exc_info, render_as_message],
        wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
        context_class=dict,
    )
