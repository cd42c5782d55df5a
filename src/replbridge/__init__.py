# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""replbridge: drive a browser through an in-browser JavaScript REPL.

Host-side calls are compiled into small JavaScript units, sent over a
MozRepl-style line protocol, and answered through a delimited JSON block:

- ``codegen``: marshal Python values and compose remote calls
- ``engine``: run a unit (immediate or callback-style) and get an Outcome
- ``retry`` / ``cond``: bounded retry loops and latching match conditions
- ``inflater``: declarative mapping of remote objects to typed Python objects
- ``session`` / ``actor``: the session handle and the high-level verbs

Typical use::

    from replbridge import lock_repl, open_repl

    with lock_repl(), open_repl() as repl:
        actor = repl.actor()
        actor.nav_page("https://example.com/")
        titles = actor.get_text("//h1")
"""

from __future__ import annotations

from .actor import Actor, FramesActor
from .config import ReplConfig
from .envelope import Outcome, OutcomeStatus
from .errors import (
    ElementMissingError,
    FatalError,
    InvalidParamsError,
    LockReplFirstError,
    MaxAttemptsError,
    NavError,
    NoBrowserError,
    NoCookiesError,
    NoFrameUrlError,
    ReplBridgeError,
    ReplInitError,
    RetryableError,
)
from .inflater import InflaterSpec
from .registry import ReplRegistry, close_all_repls, lock_repl, release_repl, repl_locked
from .retry import RetryPolicy, retry_until
from .session import Repl, open_repl

__version__ = "0.1.0"

__all__ = [
    "Actor",
    "ElementMissingError",
    "FatalError",
    "FramesActor",
    "InflaterSpec",
    "InvalidParamsError",
    "LockReplFirstError",
    "MaxAttemptsError",
    "NavError",
    "NoBrowserError",
    "NoCookiesError",
    "NoFrameUrlError",
    "Outcome",
    "OutcomeStatus",
    "Repl",
    "ReplBridgeError",
    "ReplConfig",
    "ReplInitError",
    "ReplRegistry",
    "RetryPolicy",
    "RetryableError",
    "close_all_repls",
    "lock_repl",
    "open_repl",
    "release_repl",
    "repl_locked",
    "retry_until",
]
