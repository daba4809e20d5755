"""
artiforge.core.logging - Structured Logging Setup
===================================================

Every module logs through a module-level ``structlog.get_logger()`` and binds
its component name (``logger.bind(component="cache_store")``). Event names are
snake_case (``artifact_published``, ``pipeline_failed``) with keyword context.

``configure_logging`` is called by ``Artiforge.from_file``. Library users
that already configure structlog can skip it.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog processors and the minimum log level.

    Args:
        log_level: Level name (DEBUG, INFO, ...). Unknown names fall back to INFO.
        json_output: Render JSON lines instead of the human console renderer.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
    # Quiet the HTTP client unless we are debugging.
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
