"""Structured logging via structlog, rendered to stderr."""

from __future__ import annotations

import logging
import sys

import structlog

from ssestream.config import ClientConfig


def setup_logging(config: ClientConfig | None = None) -> None:
    """Configure structlog from ``config.log_level`` and ``config.json_logs``.

    Output goes to stderr, as JSON lines or console text. The config is read
    from ``SSESTREAM_*`` environment variables when omitted.
    """
    config = config or ClientConfig()
    log_level = config.log_level.upper()
    json_logs = config.json_logs

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        # ConsoleRenderer formats exceptions itself
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
