"""
log.py - Structured logging for the vault engine

structlog over the standard logging module:
- Console rendering for interactive use (demo, notebooks)
- JSON rendering for machine collection
- Key/value events, one per state change (deposit, withdraw, fees_claimed, ...)

Modules call get_logger(__name__) at import time; nothing is emitted until the
host application calls configure_logging(), or structlog's defaults apply.
"""

import logging
import sys
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import Processor


def add_component(
    _logger: logging.Logger, _method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Tag every event with the engine name so mixed logs stay filterable."""
    event_dict.setdefault("component", "vault")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json: bool = False,
    stream=None,
) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and the root logger.

    Args:
        level: Standard logging level name
        json: Render JSON lines instead of the coloured console format
        stream: Output stream (default: sys.stdout)

    Returns:
        A logger bound to the "vault" name
    """
    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_component,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level.upper()))

    return structlog.get_logger("vault")


def get_logger(name: Optional[str] = None):
    """structlog logger for a module."""
    return structlog.get_logger(name)
