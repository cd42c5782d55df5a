# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Connection to one remote REPL: prompt discovery, handshake, commands.

On connect the evaluator greets us with a prompt such as ``repl3> ``; the
``repl3`` part is the session identifier and names the remote REPL object
every generated unit is invoked on.  The identifier is only valid for this
connection; a new connection gets a new one.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable

from .config import ReplConfig
from .envelope import Outcome, parse_envelope
from .errors import ReplInitError
from .logging_config import bind_session, unbind_session
from .transport import LineTransport

logger = logging.getLogger(__name__)

DEFAULT_REPL_ID = "repl"

ANY_PROMPT_RE = re.compile(r"repl\d*>\s")
REPL_ID_RE = re.compile(r"(?P<repl_id>repl\d*)>\s")
REPL_INIT_RE = re.compile(r"==REPL IS( NOT)? INITIALIZED==")
END_JSON_RE = re.compile(r"==END-JSON==\n")

_NEWLINES_RE = re.compile(r"[\r\n]")


def prompt_for(repl_id: str) -> re.Pattern[str]:
    return re.compile(re.escape(repl_id) + r">\s")


class ReplClient:
    """One live connection (the "Connection" of a Session).

    Construction connects, reads the first prompt to learn the REPL id and
    performs the initialize handshake.  A refused connection raises
    ``NoBrowserError``; any handshake failure raises ``ReplInitError``.
    """

    def __init__(
        self,
        config: ReplConfig | None = None,
        *,
        transport: LineTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or ReplConfig()
        self.host = self.config.host
        self.port = self.config.port
        self.timeout = self.config.timeout
        self._sleep = sleep

        self.repl_id = DEFAULT_REPL_ID
        self.prompt = prompt_for(self.repl_id)

        logger.debug("Connecting to '%s:%d'...", self.host, self.port)
        self._transport = transport or LineTransport.connect(
            self.host,
            self.port,
            timeout=self.timeout,
            log_calls=self.config.log_repl_calls,
        )
        try:
            self._discover_repl_id()
            self._initialize()
        except OSError as exc:
            # TransportTimeout included: a silent greeting or handshake
            self._transport.close()
            raise ReplInitError(f"REPL handshake with {self.host}:{self.port} failed: {exc}") from exc
        except BaseException:
            self._transport.close()
            raise
        bind_session(self.repl_id, self.host, self.port)

    def __str__(self) -> str:
        return f"<ReplClient ID[{self.repl_id}] HOST[{self.host}:{self.port}]>"

    @property
    def transport(self) -> LineTransport:
        return self._transport

    @property
    def connected(self) -> bool:
        return not self._transport.closed

    def _discover_repl_id(self) -> None:
        data = self._transport.read_until(ANY_PROMPT_RE, self.timeout, strip=False)
        match = REPL_ID_RE.search(data)
        if match:
            self.repl_id = match.group("repl_id")
        self.prompt = prompt_for(self.repl_id)
        logger.debug("REPL ID: '%s'", self.repl_id)

    def _initialize(self) -> None:
        """Ask the REPL to bind its browser window; retry once if it is opening one."""
        init_cmd = f"{self.repl_id}.repl_initialize(content)"

        reply = self.cmd(init_cmd, wait_for=REPL_INIT_RE)
        if "NOT" in reply:
            # the REPL is opening a new window; give it a moment
            logger.info("REPL not initialized yet, retrying in %.1fs", self.config.init_retry_pause)
            self._sleep(self.config.init_retry_pause)
            reply = self.cmd(init_cmd, wait_for=REPL_INIT_RE)
            if "NOT" in reply:
                raise ReplInitError(f"REPL {self.repl_id} fails to initialize")
        logger.info("REPL %s initialized on %s:%d", self.repl_id, self.host, self.port)

    def cmd(self, command: str, *, wait_for: re.Pattern[str] | str | None = None, timeout: float | None = None) -> str:
        """Send a command and return its primitive response text.

        Reads until the prompt, or until ``wait_for`` when given.  The prompt
        is stripped from the returned text.
        """
        self._transport.drain()
        self._transport.send(command)
        return self._transport.read_until(
            wait_for if wait_for is not None else self.prompt,
            timeout,
            strip=self.prompt,
        )

    def json_cmd(self, command: str, *, timeout: float | None = None) -> Outcome:
        """Send a command that answers through rc_ok()/rc_fail() and parse it.

        Newlines are flattened so the command is a single line.  Transport
        errors (including ``TransportTimeout``) propagate to the caller.
        """
        output = self.cmd(_NEWLINES_RE.sub(" ", command), wait_for=END_JSON_RE, timeout=timeout)
        return parse_envelope(output)

    def close(self) -> None:
        if self.connected:
            logger.debug("Closing %s", self)
        self._transport.close()
        unbind_session()
