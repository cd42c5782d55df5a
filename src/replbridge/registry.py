# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Process-wide registry: open sessions and the cross-process REPL lock.

Only one process at a time may drive the browser.  Exclusion uses an
advisory ``fcntl.flock`` on a lock file shared by every process on the
host.  ``repl_locked`` reports whether *this* process holds the lock; it is
False while another process holds it.

Usage::

    with lock_repl():
        repl = open_repl()
        repl.actor().goto_url("https://example.com/")

Every session opened through ``open_repl()`` is registered here and closed
at interpreter exit.
"""

from __future__ import annotations

import atexit
import fcntl
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from .config import ReplConfig, default_lock_path
from .errors import LockReplFirstError

if TYPE_CHECKING:
    from .session import Repl

logger = logging.getLogger(__name__)


class ReplRegistry:
    """Tracks open sessions and owns this process's hold on the REPL lock."""

    def __init__(self, lock_path: Path | str | None = None) -> None:
        self.lock_path = Path(lock_path) if lock_path else default_lock_path()
        self._lock_fd: int | None = None
        self._open: list[Repl] = []
        self._mutex = threading.RLock()

    # ── Lock ─────────────────────────────────────────────────────────

    @property
    def repl_locked(self) -> bool:
        """True while this process holds the REPL lock."""
        return self._lock_fd is not None

    def acquire(self, *, blocking: bool = True) -> bool:
        """Take the REPL lock and keep it until ``release()``.

        Returns False only in non-blocking mode when another process holds it.
        """
        with self._mutex:
            if self._lock_fd is not None:
                return True

            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                os.close(fd)
                logger.info("REPL lock %s is held by another process", self.lock_path)
                return False
            except BaseException:
                os.close(fd)
                raise

            self._lock_fd = fd
            logger.debug("REPL lock acquired: %s (pid %d)", self.lock_path, os.getpid())
            return True

    def release(self) -> None:
        """Drop the REPL lock.  No-op when it is not held."""
        with self._mutex:
            fd, self._lock_fd = self._lock_fd, None
            if fd is None:
                return
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)
            logger.debug("REPL lock released: %s", self.lock_path)

    @contextmanager
    def lock_repl(self, *, blocking: bool = True) -> Iterator[ReplRegistry]:
        """Hold the REPL lock for the duration of the block.

        Nested use is a no-op: the lock is released only by the outermost
        block that acquired it, on normal and exceptional exit alike.
        """
        if self.repl_locked:
            yield self
            return

        if not self.acquire(blocking=blocking):
            raise LockReplFirstError(f"REPL lock {self.lock_path} is held by another process")
        try:
            yield self
        finally:
            self.release()

    # ── Open sessions ────────────────────────────────────────────────

    @property
    def open_repls(self) -> list[Repl]:
        with self._mutex:
            return list(self._open)

    def register(self, repl: Repl) -> Repl:
        with self._mutex:
            if repl not in self._open:
                self._open.append(repl)
        return repl

    def close_repl(self, repl: Repl) -> None:
        """Forget ``repl`` and close it."""
        with self._mutex:
            if repl in self._open:
                self._open.remove(repl)
        repl.close()

    def close_all_repls(self) -> None:
        """Close every registered session.  Called at interpreter exit."""
        with self._mutex:
            repls, self._open = self._open, []
        for repl in repls:
            try:
                repl.close()
            except OSError:
                logger.warning("Failed to close %s", repl, exc_info=True)
        if repls:
            logger.debug("Closed %d open REPL session(s)", len(repls))


# ---------------------------------------------------------------------------
# Module-level default registry
# ---------------------------------------------------------------------------

_registry: ReplRegistry | None = None
_registry_lock = threading.Lock()


def get_registry() -> ReplRegistry:
    """Return the process-wide registry, creating it on first use.

    The lock path comes from ``REPLBRIDGE_LOCK_PATH`` when set.
    """
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = ReplRegistry(ReplConfig.from_env().lock_path)
            atexit.register(_shutdown)
        return _registry


def _shutdown() -> None:
    if _registry is not None:
        _registry.close_all_repls()
        _registry.release()


def lock_repl(*, blocking: bool = True):
    """``get_registry().lock_repl()``."""
    return get_registry().lock_repl(blocking=blocking)


def release_repl() -> None:
    get_registry().release()


def repl_locked() -> bool:
    return get_registry().repl_locked


def close_repl(repl: Repl) -> None:
    get_registry().close_repl(repl)


def close_all_repls() -> None:
    get_registry().close_all_repls()


def _reset_for_testing(registry: ReplRegistry | None = None) -> None:
    """Replace the default registry (None drops it) for test isolation."""
    global _registry
    with _registry_lock:
        if _registry is not None and _registry is not registry:
            _registry.release()
        _registry = registry
