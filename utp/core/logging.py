"""
Structured logging setup based on structlog
"""
import logging
import sys
from typing import Any, List, Optional

import structlog

from utp.core.exceptions import ConfigurationError

LOG_FORMATS = ("auto", "console", "json")


def _renderers(log_format: str, is_debug: bool) -> List[Any]:
    if log_format not in LOG_FORMATS:
        raise ConfigurationError(
            f"unknown log format: {log_format}",
            details={"allowed": list(LOG_FORMATS)},
        )
    if log_format == "auto":
        log_format = "console" if is_debug else "json"

    if log_format == "console":
        return [structlog.dev.ConsoleRenderer()]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def setup_logging(
    log_level: str = "INFO",
    is_debug: bool = False,
    log_format: str = "auto",
    service: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the pipeline

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        is_debug: Debug mode, picks the console renderer when log_format is "auto"
        log_format: "console", "json" or "auto"
        service: Service name stamped on every event

    Raises:
        ConfigurationError: Unknown log level or log format
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"unknown log level: {log_level}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if service:
        processors.insert(0, _stamp_service(service))
    processors.extend(_renderers(log_format, is_debug))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _stamp_service(service: str):
    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", service)
        return event_dict
    return processor


def get_logger(name: str) -> Any:
    """
    Get a logger for a module

    Args:
        name: Module name

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
