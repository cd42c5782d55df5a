# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""replbridge exception hierarchy.

All replbridge-specific errors inherit from ReplBridgeError.  Two branches
split them by what the caller can do about it:

- FatalError: the session is unusable (remote unreachable, handshake failed,
  malformed input).  Do not retry.
- RetryableError: a temporary condition (element not there yet, lock not
  held).  The operation may succeed if attempted again later.

The Execution Engine and the Result Envelope never raise; remote failures
come back as ERROR outcomes instead.
"""

from __future__ import annotations


class ReplBridgeError(Exception):
    """Base exception for all replbridge errors."""


class FatalError(ReplBridgeError):
    """The session cannot continue."""


class RetryableError(ReplBridgeError):
    """Temporary failure; the operation may be retried."""


# ── Fatal ────────────────────────────────────────────────────────────


class NoBrowserError(FatalError):
    """The remote evaluator refused the connection (remote host unreachable)."""

    def __init__(self, message: str = "remote host unreachable", *, host: str = "", port: int = 0) -> None:
        super().__init__(message)
        self.host = host
        self.port = port


class ReplInitError(FatalError):
    """The initialize handshake failed: NOT INITIALIZED twice, or no answer in time."""


class InvalidParamsError(FatalError, ValueError):
    """A required structural parameter is missing or malformed."""


class NoFrameUrlError(FatalError):
    """A frame-aware verb was called before switch_to() selected a frame."""


class MaxAttemptsError(FatalError):
    """The maximum number of attempts has been exceeded."""


# ── Retryable ────────────────────────────────────────────────────────


class LockReplFirstError(RetryableError):
    """A verb was invoked without holding the process-wide REPL lock."""

    DESC = "The REPL must be locked before any REPL actions"

    def __init__(self, message: str = DESC) -> None:
        super().__init__(message)


class NavError(RetryableError):
    """Navigation did not reach the expected page."""


class ElementMissingError(RetryableError):
    """Elements never appeared in the document within the wait period."""

    def __init__(self, message: str, *, xpath: str = "") -> None:
        super().__init__(message)
        self.xpath = xpath


class NoCookiesError(RetryableError):
    """The document exposed no cookies."""
