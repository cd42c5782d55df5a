# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Execution Engine: send one compiled unit, block for its outcome.

Both execution modes look the same to the caller: a blocking call with a
timeout that returns an ``Outcome``:

- sync units report ``rc_ok(rc)`` before the remote execution returns
- async units start a remote task whose callback reports later; the response
  block arrives whenever the task completes

Per-call state machine::

    PENDING → SENT → COMPLETED (ok | error)
                   ↘ TIMED_OUT

A timed-out call cannot be cancelled remotely.  If its callback fires later
it writes to the stream of this connection; rotating the connection is the
only recovery (see ``Actor.exec``).

The engine never raises: transport and decoding failures become ERROR
outcomes.  One transaction at a time per connection.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import StrEnum

from .client import ReplClient
from .codegen import CodeUnit, ExecMode
from .config import DEFAULT_EXEC_TIMEOUT
from .envelope import Outcome

logger = logging.getLogger(__name__)


class CallState(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


class ExecutionEngine:
    """Runs CodeUnits on one ReplClient."""

    def __init__(
        self,
        client: ReplClient,
        *,
        default_timeout: float = DEFAULT_EXEC_TIMEOUT,
        log_compiled: bool = False,
    ) -> None:
        self.client = client
        self.default_timeout = default_timeout
        self.log_compiled = log_compiled
        self.last_state: CallState | None = None
        self.last_elapsed_ms: float = 0.0
        self._lock = threading.Lock()

    def execute(self, unit: CodeUnit, timeout: float | None = None) -> Outcome:
        """Dispatch on the unit's mode."""
        if unit.mode is ExecMode.ASYNC:
            return self.execute_async(unit, timeout)
        return self.execute_sync(unit, timeout)

    def execute_sync(self, unit: CodeUnit, timeout: float | None = None) -> Outcome:
        """Run a unit built by ``compile_sync``."""
        return self._run(unit, timeout)

    def execute_async(self, unit: CodeUnit, timeout: float | None = None) -> Outcome:
        """Run a unit built by ``compile_async``; blocks until the remote callback reports."""
        return self._run(unit, timeout)

    def _run(self, unit: CodeUnit, timeout: float | None) -> Outcome:
        budget = self.default_timeout if timeout is None else timeout
        self.last_state = CallState.PENDING
        if budget <= 0:
            self.last_state = CallState.TIMED_OUT
            logger.debug("Deadline already expired; %s unit not sent", unit.mode)
            return Outcome.timeout()

        if self.log_compiled:
            logger.debug("COMPILED (%s):\n%s", unit.mode, unit.source)

        with self._lock:
            start = time.monotonic()
            self.last_state = CallState.SENT
            try:
                outcome = self.client.json_cmd(unit.source, timeout=budget)
            except TimeoutError:
                self.last_state = CallState.TIMED_OUT
                logger.warning("**TIMER EXPIRED** %s unit after %.1fs on %s", unit.mode, budget, self.client)
                return Outcome.timeout()
            except OSError as exc:
                self.last_state = CallState.COMPLETED
                logger.warning("Transport failure during %s unit: %s", unit.mode, exc)
                return Outcome.error("transport failure: ", exc)
            finally:
                self.last_elapsed_ms = round((time.monotonic() - start) * 1000, 1)

        self.last_state = CallState.COMPLETED
        if outcome.is_ok:
            logger.debug("EvalRC OK (%.1fms)", self.last_elapsed_ms)
        else:
            logger.warning("FAILED: remote %s unit: %s", unit.mode, outcome.message)
        return outcome
