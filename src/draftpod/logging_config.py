"""
Process-wide logging setup shared by the API and the scripts.

Modules keep plain ``logging.getLogger(__name__)`` loggers; the root
handler renders their records through structlog's ``ProcessorFormatter``,
as JSON lines in production or coloured console lines in development.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, List

import structlog

_configured = False

# Applied to every stdlib record before rendering
SHARED_PROCESSORS: List[Any] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def build_formatter(fmt: str = "console") -> structlog.stdlib.ProcessorFormatter:
    """Formatter for the root handler: ``json`` or ``console``."""
    if fmt == "json":
        renderers: List[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer()]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Install the root handler.

    Safe to call more than once; only the first call attaches a handler,
    later calls just update the level.
    """
    global _configured
    root = logging.getLogger()
    root.setLevel(level)
    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(build_formatter(fmt))
    root.addHandler(handler)
    _configured = True
