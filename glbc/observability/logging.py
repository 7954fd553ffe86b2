"""structlog setup for glbc.

Controller code logs through structlog; uvicorn, kubernetes-asyncio and
google-api-core log through the standard library. Both streams are written
to stderr by the same renderer, and once :func:`bind_cluster` has run every
line names the cluster it came from.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Processors applied to structlog events and stdlib records alike.
_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
]

# Client libraries that log every request at INFO.
_LIBRARY_LOGGERS = ("uvicorn.error", "kubernetes_asyncio", "google.api_core", "aiohttp")

_HANDLER_NAME = "glbc"


def setup_logging(level: str = "info", json_output: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    JSON lines by default; ``json_output=False`` renders for a terminal.
    Library loggers never go below WARNING. Calling this again replaces the
    previous configuration.
    """
    log_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[*_SHARED_PROCESSORS, structlog.stdlib.add_logger_name],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def bind_cluster(uid: str, project: str = "") -> None:
    """Tag every later log line in this context (and tasks it spawns) with the cluster."""
    context = {"cluster_uid": uid}
    if project:
        context["project"] = project
    structlog.contextvars.bind_contextvars(**context)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
