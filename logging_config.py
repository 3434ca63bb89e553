"""Logging setup driven by LoggingSettings.

Modules keep using logging.getLogger(__name__); structlog renders the records
as console lines or JSON, including anything passed through ``extra=``.
"""
from __future__ import annotations

import logging

import structlog

from config import get_settings

_handlers: list[logging.Handler] = []


def _formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.ExtraAdder(),
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(force: bool = False) -> None:
    """Attach structlog-formatted handlers to the root logger once per process."""
    if _handlers and not force:
        return

    root = logging.getLogger()
    for handler in _handlers:
        root.removeHandler(handler)
    _handlers.clear()

    log_settings = get_settings().logging
    formatter = _formatter(log_settings.format)

    _handlers.append(logging.StreamHandler())
    if log_settings.file:
        _handlers.append(logging.FileHandler(log_settings.file))

    for handler in _handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(log_settings.level.upper())
