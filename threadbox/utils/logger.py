"""Structured logging helpers built on top of structlog.

Library modules only call ``get_logger``. It wraps a stdlib logger with its
own processor chain and never touches structlog's global configuration, so a
host application's ``structlog.configure(...)`` stays in effect. Events land
in stdlib ``logging`` under the ``threadbox`` namespace; applications that want
threadbox to render them itself call ``configure_logging()`` once.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import structlog

from threadbox.config import LoggingSettings, load_logging_settings

BoundLogger = structlog.stdlib.BoundLogger

PACKAGE_LOGGER = "threadbox"

_configured = False

# Event name becomes the record message, key/value pairs become record extras.
_LIBRARY_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.stdlib.render_to_log_kwargs,
]


def _coerce_level(level_name: str) -> int:
    """Translate a string/int environment value into a logging level."""
    if level_name.isdigit():
        return int(level_name)
    return getattr(logging, level_name.upper(), logging.WARNING)


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Attach a console handler and an optional JSONL file handler to the package logger.

    Only the ``threadbox`` stdlib logger is touched; the root logger and
    structlog's global configuration are left alone.
    """
    global _configured
    if _configured:
        return
    if settings is None:
        settings = load_logging_settings()

    effective_level = logging.DEBUG if settings.verbose else _coerce_level(settings.level)
    pre_chain = [
        structlog.processors.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(effective_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=pre_chain,
        )
    )
    handlers.append(console_handler)

    if settings.file:
        log_path = Path(settings.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(effective_level)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=pre_chain,
            )
        )
        handlers.append(file_handler)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.setLevel(effective_level)
    package_logger.propagate = False
    for handler in handlers:
        package_logger.addHandler(handler)

    _configured = True


def get_logger(name: str = PACKAGE_LOGGER, **bindings: Any) -> BoundLogger:
    """Return a structured logger over the stdlib logger ``name``, optionally bound with context."""
    logger = structlog.wrap_logger(
        logging.getLogger(name),
        processors=_LIBRARY_PROCESSORS,
        wrapper_class=BoundLogger,
    )
    if bindings:
        logger = logger.bind(**bindings)
    return logger
