# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Connection and session configuration.

Defaults match a stock MozRepl listener on localhost:4242.  Every field can
be overridden from the environment via ``ReplConfig.from_env()``.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path

from .errors import InvalidParamsError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4242
DEFAULT_TIMEOUT = 30.0  # connect + per-read deadline (seconds)
DEFAULT_EXEC_TIMEOUT = 30.0  # per remote transaction (seconds)
DEFAULT_INIT_RETRY_PAUSE = 2.0  # wait before the second initialize attempt
LOCK_REPL_BASENAME = "MozRepl.lock"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def default_lock_path() -> Path:
    """Lock file shared by every process on this host."""
    return Path(tempfile.gettempdir()) / "replbridge" / LOCK_REPL_BASENAME


@dataclass
class ReplConfig:
    """Session configuration."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    exec_timeout: float = DEFAULT_EXEC_TIMEOUT
    init_retry_pause: float = DEFAULT_INIT_RETRY_PAUSE
    lock_path: Path = field(default_factory=default_lock_path)
    log_repl_calls: bool = False  # DEBUG-log every command sent/received
    log_compiled: bool = False  # DEBUG-log generated JavaScript
    rotate_on_timeout: bool = True  # open a fresh connection after a timed-out call

    def __post_init__(self) -> None:
        if not self.host:
            raise InvalidParamsError("host must be a non-empty string")
        if not 0 < self.port < 65536:
            raise InvalidParamsError(f"invalid port: {self.port}")
        if self.timeout <= 0:
            raise InvalidParamsError(f"timeout must be > 0, got {self.timeout}")
        self.lock_path = Path(self.lock_path)

    @classmethod
    def from_env(cls, **overrides) -> ReplConfig:
        """Build a config from ``REPLBRIDGE_*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict = {}

        env_host = os.environ.get("REPLBRIDGE_HOST", "").strip()
        if env_host:
            values["host"] = env_host
        env_port = os.environ.get("REPLBRIDGE_PORT", "").strip()
        if env_port:
            values["port"] = _parse_number("REPLBRIDGE_PORT", env_port, int)
        env_timeout = os.environ.get("REPLBRIDGE_TIMEOUT", "").strip()
        if env_timeout:
            values["timeout"] = _parse_number("REPLBRIDGE_TIMEOUT", env_timeout, float)
        env_exec = os.environ.get("REPLBRIDGE_EXEC_TIMEOUT", "").strip()
        if env_exec:
            values["exec_timeout"] = _parse_number("REPLBRIDGE_EXEC_TIMEOUT", env_exec, float)
        env_lock = os.environ.get("REPLBRIDGE_LOCK_PATH", "").strip()
        if env_lock:
            values["lock_path"] = Path(env_lock).expanduser()
        env_calls = os.environ.get("REPLBRIDGE_LOG_CALLS", "").strip().lower()
        if env_calls:
            values["log_repl_calls"] = env_calls in _TRUTHY
        env_compiled = os.environ.get("REPLBRIDGE_LOG_COMPILED", "").strip().lower()
        if env_compiled:
            values["log_compiled"] = env_compiled in _TRUTHY

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **changes) -> ReplConfig:
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _parse_number(name: str, raw: str, kind: type):
    try:
        return kind(raw)
    except ValueError:
        raise InvalidParamsError(f"{name}: expected {kind.__name__}, got {raw!r}") from None
