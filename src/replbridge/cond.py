# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Reusable, stateful match conditions for ``retry_until``.

A ``Cond`` latches: once ``test()`` succeeds, further calls return the
latched result without re-evaluating until ``reset()`` is called.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Any

from .errors import InvalidParamsError


class Cond:
    """Base condition; subclasses implement ``_test``."""

    def __init__(self, match_values: Iterable[Any], match_method: Any) -> None:
        values = list(match_values)
        if not values:
            raise InvalidParamsError("expected a non-empty list of values to match against")
        self.match_values = values
        self.match_method = match_method
        self.result: Any = False
        self.tests = 0

    def reset(self) -> None:
        """Clear the latched result."""
        self.result = False
        self.tests = 0

    def test(self, *params: Any) -> Any:
        """Evaluate the condition unless it is already satisfied."""
        if self.result is False:
            self.tests += 1
            result = self._test(*params)
            self.result = False if result is None else result
        return self.result

    __call__ = test

    @property
    def success(self) -> bool:
        return self.result is not False

    def _test(self, *params: Any) -> Any:
        raise NotImplementedError


class CondString(Cond):
    """Case-insensitive string test, e.g. ``include`` or ``end_with``.

    The value under test is the subject; the match values are the needles.
    Returns the first needle that matches.
    """

    _METHODS: dict[str, Callable[[str, str], bool]] = {
        "include": lambda haystack, needle: needle in haystack,
        "end_with": lambda haystack, needle: haystack.endswith(needle),
        "start_with": lambda haystack, needle: haystack.startswith(needle),
    }

    def __init__(self, match_values: Iterable[str], match_method: str) -> None:
        if match_method not in self._METHODS:
            raise InvalidParamsError(f"unsupported string match: {match_method!r}")
        super().__init__([str(v).lower() for v in match_values], match_method)

    def _test(self, value: Any) -> Any:
        if not isinstance(value, str):
            return False
        subject = value.lower()
        method = self._METHODS[self.match_method]
        return next((mv for mv in self.match_values if method(subject, mv)), None)


class CondRegexp(Cond):
    """Match strings against patterns; plain strings match literally, ignoring case."""

    def __init__(self, match_values: Iterable[str | re.Pattern[str]]) -> None:
        patterns = [
            mv if isinstance(mv, re.Pattern) else re.compile(re.escape(str(mv)), re.IGNORECASE) for mv in match_values
        ]
        super().__init__(patterns, "search")

    def _test(self, value: Any) -> Any:
        if not isinstance(value, str):
            return None
        return next((m for m in (p.search(value) for p in self.match_values) if m), None)


class CondProc(Cond):
    """Wrap a callable; its return value is the result."""

    def __init__(self, func: Callable[..., Any]) -> None:
        if not callable(func):
            raise InvalidParamsError("expected a callable")
        super().__init__(["not_used"], func)

    def _test(self, *params: Any) -> Any:
        return self.match_method(*params)


def include(*strs: str) -> CondString:
    """Succeeds when the tested string contains any of ``strs``."""
    return CondString(strs, "include")


def end_with(*strs: str) -> CondString:
    return CondString(strs, "end_with")


def matches(*patterns: str | re.Pattern[str]) -> CondRegexp:
    return CondRegexp(patterns)


def cond_block(func: Callable[..., Any]) -> CondProc:
    return CondProc(func)
