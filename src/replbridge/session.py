# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Session: the externally visible handle to a remote REPL.

A ``Repl`` owns exactly one live connection (``ReplClient``) and the
``ExecutionEngine`` bound to it.  ``new_client()`` rotates both: the old
connection is closed, a new one is opened and the REPL id is re-read.
Actors always read ``repl.repl_id`` and ``repl.engine`` at call time, so
they follow a rotation without being rebuilt.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING, Any

from .client import ReplClient
from .config import ReplConfig
from .engine import ExecutionEngine

if TYPE_CHECKING:
    from .actor import Actor, FramesActor
    from .registry import ReplRegistry

logger = logging.getLogger(__name__)


class Repl:
    """One session with the remote evaluator."""

    def __init__(
        self,
        config: ReplConfig | None = None,
        *,
        client_factory: Callable[[ReplConfig], ReplClient] = ReplClient,
    ) -> None:
        self.config = config or ReplConfig.from_env()
        self._client_factory = client_factory
        self.client: ReplClient | None = None
        self.engine: ExecutionEngine | None = None
        self._actor: Actor | None = None

        logger.debug("===STARTING REPL SESSION=== %s:%d", self.config.host, self.config.port)
        self.new_client()

    def __str__(self) -> str:
        return f"<REPL ID[{self.repl_id}]>"

    def __enter__(self) -> Repl:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def repl_id(self) -> str | None:
        """Identifier of the remote REPL object for the current connection."""
        return self.client.repl_id if self.client is not None else None

    id = repl_id

    @property
    def connected(self) -> bool:
        return self.client is not None and self.client.connected

    def new_client(self) -> str:
        """Close the current connection (if any) and open a new one.

        Returns the new REPL id.
        """
        old_id = self.repl_id
        if self.client is not None:
            self.client.close()
            self.client = None
            self.engine = None

        self.client = self._client_factory(self.config)
        self.engine = ExecutionEngine(
            self.client,
            default_timeout=self.config.exec_timeout,
            log_compiled=self.config.log_compiled,
        )
        if old_id is not None:
            logger.info("Connection rotated: %s -> %s", old_id, self.repl_id)
        return self.repl_id

    def actor(self) -> Actor:
        """The session's default Actor, created on first use."""
        if self._actor is None:
            from .actor import Actor

            self._actor = Actor(self)
        return self._actor

    def frames_actor(self, frame_url: str | None = None, **kwargs: Any) -> FramesActor:
        """A new frame-aware Actor, optionally already switched to ``frame_url``."""
        from .actor import FramesActor

        actor = FramesActor(self, **kwargs)
        if frame_url is not None:
            actor.switch_to(frame_url)
        return actor

    def close(self) -> None:
        """Disconnect.  Idempotent."""
        if self.client is None:
            return
        logger.debug("===CLOSING REPL SESSION=== %s", self)
        try:
            self.client.close()
        finally:
            self.client = None
            self.engine = None


def open_repl(
    config: ReplConfig | None = None,
    *,
    registry: ReplRegistry | None = None,
    client_factory: Callable[[ReplConfig], ReplClient] = ReplClient,
    **overrides: Any,
) -> Repl:
    """Open a session and register it so it is closed at interpreter exit.

    Keyword overrides (``host=``, ``port=``, ...) are applied on top of
    ``config`` or, when it is None, on top of the environment.
    """
    from .registry import get_registry

    if config is None:
        config = ReplConfig.from_env(**overrides)
    elif overrides:
        config = config.with_overrides(**overrides)

    repl = Repl(config, client_factory=client_factory)
    (registry or get_registry()).register(repl)
    return repl
