# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Bounded retry loop over a host predicate or a reusable condition.

``retry_until`` evaluates the check up to ``attempts`` times, sleeping
between failures according to the pause schedule, and gives up when the
outer ``timeout`` deadline passes.  A check result of ``None``/``False`` is a
failure; anything else is returned immediately.

Sleeps block the calling thread.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import InvalidParamsError, MaxAttemptsError

if TYPE_CHECKING:
    from .cond import Cond

logger = logging.getLogger(__name__)

TIMEOUTS: dict[str, float] = {
    "short": 2,
    "normal": 10,
    "medium": 20,
    "long": 30,
    "extra": 120,
}
DEFAULT_TIMEOUT = "normal"

ATTEMPTS: dict[str, int] = {
    "few": 5,
    "normal": 10,
    "many": 20,
}
DEFAULT_ATTEMPTS = "normal"

PAUSES: dict[str, float | tuple[float, ...]] = {
    "short": 0.5,
    "normal": 1,
    "above_normal": 5,
    "long": 10,
    "progressive": (0.5, 0.5, 1, 1, 2, 2, 5, 5),
}
DEFAULT_PAUSE = "progressive"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How long, how often and how patiently to retry.

    Normalized on construction: ``attempts == 1`` collapses the pause to 0;
    a pause schedule shorter than ``attempts`` is padded with its last value.
    """

    timeout: float = TIMEOUTS[DEFAULT_TIMEOUT]
    attempts: int = ATTEMPTS[DEFAULT_ATTEMPTS]
    pause: float | tuple[float, ...] = PAUSES[DEFAULT_PAUSE]

    def __post_init__(self) -> None:
        if not _is_number(self.timeout) or self.timeout < 0:
            raise InvalidParamsError(f"invalid timeout: {self.timeout!r}")
        if not isinstance(self.attempts, int) or isinstance(self.attempts, bool) or self.attempts < 1:
            raise InvalidParamsError("attempts must be >= 1")

        pause = self.pause
        if isinstance(pause, Sequence) and not isinstance(pause, str):
            pause = tuple(pause)
            if not pause or not all(_is_number(p) and p >= 0 for p in pause):
                raise InvalidParamsError(f"invalid pause: {self.pause!r}")
        elif not _is_number(pause) or pause < 0:
            raise InvalidParamsError(f"invalid pause: {self.pause!r}")

        if self.attempts == 1:
            pause = 0
        elif isinstance(pause, tuple) and len(pause) < self.attempts:
            pause = pause + (pause[-1],) * (self.attempts - len(pause))
        object.__setattr__(self, "pause", pause)

    @classmethod
    def resolve(
        cls,
        timeout: float | str | None = None,
        attempts: int | str | None = None,
        pause: float | str | Sequence[float] | None = None,
    ) -> RetryPolicy:
        """Build a policy from numbers or preset names (``"short"``, ``"many"``, ...)."""
        timeout = DEFAULT_TIMEOUT if timeout is None else timeout
        attempts = DEFAULT_ATTEMPTS if attempts is None else attempts
        pause = DEFAULT_PAUSE if pause is None else pause
        return cls(
            timeout=_preset(TIMEOUTS, timeout, "timeout"),
            attempts=_preset(ATTEMPTS, attempts, "attempts"),
            pause=_preset(PAUSES, pause, "pause"),
        )

    def pause_for(self, attempt: int) -> float:
        """Pause after failed attempt number ``attempt`` (0-based)."""
        if isinstance(self.pause, tuple):
            return self.pause[min(attempt, len(self.pause) - 1)]
        return self.pause


def _preset(table: dict, value: Any, what: str) -> Any:
    if isinstance(value, str):
        try:
            return table[value]
        except KeyError:
            raise InvalidParamsError(f"invalid {what}: '{value}'") from None
    return value


def retry_until(
    predicate: Callable[..., Any] | None = None,
    *,
    policy: RetryPolicy | None = None,
    cond: Cond | None = None,
    args: Sequence[Any] = (),
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    raise_: bool | str = False,
    **options: Any,
) -> Any:
    """Retry until ``predicate(*args)`` (or ``cond.test(*args)``) succeeds.

    Args:
        predicate: host-side check; mutually exclusive with ``cond``.
        policy: a ready RetryPolicy; otherwise built from ``timeout``,
            ``attempts`` and ``pause`` keyword options (numbers or preset names).
        cond: a stateful ``Cond`` whose ``test()`` replaces the predicate.
        args: positional arguments passed to every check.
        raise_: raise ``MaxAttemptsError`` instead of returning None; a
            string becomes the exception message.

    Returns:
        The first result that is neither ``None`` nor ``False``, or ``None``
        when attempts run out or the deadline passes.
    """
    if (predicate is None) == (cond is None):
        raise InvalidParamsError("provide either a predicate or a Cond, not both")
    unknown = set(options) - {"timeout", "attempts", "pause"}
    if unknown:
        raise InvalidParamsError(f"unknown retry options: {', '.join(sorted(unknown))}")
    if policy is None:
        policy = RetryPolicy.resolve(**options)

    check = predicate if predicate is not None else cond.test
    deadline = clock() + policy.timeout

    logger.debug(
        "[RETRY_UNTIL] timeout=%s attempts=%d pause=%s",
        policy.timeout,
        policy.attempts,
        policy.pause,
    )
    for attempt in range(policy.attempts):
        rc = check(*args)
        if rc is not None and rc is not False:
            logger.debug("Attempt %d succeeded", attempt)
            return rc

        if attempt + 1 >= policy.attempts:
            break

        pause = policy.pause_for(attempt)
        remaining = deadline - clock()
        if remaining <= 0 or pause >= remaining:
            logger.debug("**TIMER EXPIRED** after %d attempts", attempt + 1)
            return _give_up(raise_, f"timeout expired after {attempt + 1} attempts")
        logger.debug("Attempt %d FAILED: sleep %s", attempt, pause)
        if pause > 0:
            sleep(pause)

    logger.debug("Gave up after %d attempts", policy.attempts)
    return _give_up(raise_, f"gave up after {policy.attempts} attempts")


def _give_up(raise_: bool | str, message: str) -> None:
    if raise_:
        raise MaxAttemptsError(raise_ if isinstance(raise_, str) else message)
    return None


class Retrying:
    """Mixin exposing ``retry_until`` as a method."""

    def retry_until(self, predicate: Callable[..., Any] | None = None, **options: Any) -> Any:
        return retry_until(predicate, **options)
