# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Result Envelope: the normalized outcome of one remote transaction.

The evaluator reports every transaction through one of two primitives,
``repl.rc_ok(value)`` or ``repl.rc_fail(exception, message)``, which print::

    ==BEGIN-JSON==
    {"status": "OK", "result": ...}
    ==END-JSON==

``parse_envelope`` turns raw stream text into an ``Outcome``.  It never
raises: a missing block or undecodable JSON becomes an ERROR outcome whose
message starts with ``decoding failure:``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

BEGIN_MARKER = "==BEGIN-JSON=="
END_MARKER = "==END-JSON=="

_BLOCK_RE = re.compile(r"==BEGIN-JSON==\s*(?P<json>.+?)\s*==END-JSON==", re.DOTALL)

TIMEOUT_MESSAGE = "timeout expired"


class OutcomeStatus(StrEnum):
    OK = "OK"
    ERROR = "ERROR"

    @classmethod
    def normalize(cls, value: Any) -> OutcomeStatus:
        """Case-normalize a remote status; anything but "ok" is an error."""
        if isinstance(value, str) and value.strip().upper() == cls.OK:
            return cls.OK
        return cls.ERROR


@dataclass(frozen=True, slots=True)
class Outcome:
    """Immutable result of one remote transaction."""

    status: OutcomeStatus
    message: str | None = None
    payload: Any = None
    timed_out: bool = False

    @property
    def is_ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    def __bool__(self) -> bool:
        return self.is_ok

    @property
    def result(self) -> Any:
        """The payload when OK, otherwise None."""
        return self.payload if self.is_ok else None

    @classmethod
    def ok(cls, payload: Any = None) -> Outcome:
        return cls(OutcomeStatus.OK, payload=payload)

    @classmethod
    def error(cls, *parts: Any) -> Outcome:
        return cls(OutcomeStatus.ERROR, message="".join(str(p) for p in parts))

    @classmethod
    def timeout(cls) -> Outcome:
        return cls(OutcomeStatus.ERROR, message=TIMEOUT_MESSAGE, timed_out=True)

    @classmethod
    def from_props(cls, props: dict) -> Outcome:
        """Build from the decoded JSON object printed by rc_ok()/rc_fail()."""
        status = OutcomeStatus.normalize(props.get("status"))
        result = props.get("result")
        if status is OutcomeStatus.OK:
            return cls(status, message=props.get("message"), payload=result)

        exception = props.get("exception")
        parts = [str(p) for p in (exception, result) if p not in (None, "")]
        message = props.get("message") or ": ".join(parts) or "remote call failed"
        return cls(status, message=message)


def parse_envelope(text: Any) -> Outcome:
    """Extract and decode the delimited JSON block from raw response text."""
    if not isinstance(text, str):
        return Outcome.error("decoding failure: expected str from transport, got ", type(text).__name__)

    match = _BLOCK_RE.search(text)
    if match is None:
        return Outcome.error("decoding failure: no ", BEGIN_MARKER, "/", END_MARKER, " block in response")

    try:
        props = json.loads(match.group("json"))
    except ValueError as exc:
        return Outcome.error("decoding failure: ", exc)

    if not isinstance(props, dict):
        return Outcome.error("decoding failure: expected a JSON object, got ", type(props).__name__)

    return Outcome.from_props(props)
