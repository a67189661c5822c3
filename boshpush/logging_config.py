"""
Tool: Bridge Logging
Purpose: One log pipeline for the control plane, dispatch engine and pump

The bridge writes every record to stderr in one of two modes:

- console (default): human-readable key=value lines from structlog's
  ConsoleRenderer, for running `boshpush serve` in a terminal
- json: one JSON object per line with timestamp, level, logger and event,
  for log shippers in front of a deployed bridge

The mode and level come from the `logging` section of args/bridge.yaml;
BOSHPUSH_LOG_FORMAT=json and BOSHPUSH_LOG_LEVEL apply when the caller passes
nothing. Structured events from get_logger() and plain logging.getLogger()
records (uvicorn, the registry, the pump) are rendered the same way.

Usage:
    from boshpush.logging_config import get_logger, setup_logging

    setup_logging(level="DEBUG", json_output=True)
    get_logger(__name__).info("push_submitted", sid="s1")
"""

from __future__ import annotations

import logging
import os
import sys

import structlog


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Route all bridge logging through structlog on stderr."""
    if level is None:
        level = os.environ.get("BOSHPUSH_LOG_LEVEL", "INFO")

    if json_output is None:
        json_output = os.environ.get("BOSHPUSH_LOG_FORMAT", "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Records from plain logging.getLogger() loggers go through the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["get_logger", "setup_logging"]
