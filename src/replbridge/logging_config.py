# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge. Terminal: ConsoleRenderer, log shipping: JSONRenderer.

Leaf module with no replbridge imports. Safe to call early in startup.

Library modules log through ``logging.getLogger(__name__)``; the wire
traffic of a connection goes to the ``replbridge.protocol`` logger so it can
be switched on independently (``REPLBRIDGE_LOG_CALLS``).
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

PROTOCOL_LOGGER = "replbridge.protocol"


def configure(*, json_output: bool = False, level: str | None = None) -> None:
    """Configure structlog with stdlib bridge.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level. Falls back to ``REPLBRIDGE_LOG_LEVEL``, then INFO.
    """
    if level is None:
        level = os.environ.get("REPLBRIDGE_LOG_LEVEL", "INFO")

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def bind_session(repl_id: str, host: str, port: int) -> None:
    """Attach the live connection identity to every subsequent log line."""
    structlog.contextvars.bind_contextvars(repl_id=repl_id, repl_addr=f"{host}:{port}")


def unbind_session() -> None:
    structlog.contextvars.unbind_contextvars("repl_id", "repl_addr")
