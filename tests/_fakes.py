# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Scripted stand-ins for the remote evaluator.

- ``FakeEvaluator``: the server end of a ``socket.socketpair`` that speaks the
  line protocol (greeting prompt, initialize handshake, JSON blocks).
- ``FakeBrowser``: a ``client_factory`` for ``Repl`` handing out
  ``FakeClient`` objects that answer ``json_cmd`` from a shared script.
"""

from __future__ import annotations

import json
import socket
import threading
from collections import deque

from replbridge.envelope import Outcome
from replbridge.transport import LineTransport

INITIALIZED = "==REPL IS INITIALIZED=="
NOT_INITIALIZED = "==REPL IS NOT INITIALIZED=="


def json_block(result=None, *, status="OK", exception=None) -> str:
    """What rc_ok()/rc_fail() print."""
    props = {"status": status, "result": result}
    if exception is not None:
        props["exception"] = exception
    return f"==BEGIN-JSON==\n{json.dumps(props)}\n==END-JSON=="


# ---------------------------------------------------------------------------
# Socket level
# ---------------------------------------------------------------------------


class FakeEvaluator:
    """Answers commands on the far end of a socketpair from a background thread.

    ``replies`` is consumed one item per non-initialize command: a string is
    sent verbatim (followed by the prompt), a callable receives the command and
    returns the string, ``None`` sends nothing so the client times out.  The
    last initialize reply repeats forever.
    """

    def __init__(self, repl_id: str = "repl3", *, init_replies=(INITIALIZED,), greeting: str | None = None):
        self.repl_id = repl_id
        self.init_replies = deque(init_replies)
        self.greeting = greeting if greeting is not None else f"Welcome to MozRepl.\n\n{repl_id}> "
        self.replies: deque = deque()
        self.received: list[str] = []
        self.client_sock, self._server = socket.socketpair()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> FakeEvaluator:
        self._server.sendall(self.greeting.encode())
        self._thread.start()
        return self

    def transport(self, timeout: float = 2.0) -> LineTransport:
        return LineTransport(self.client_sock, timeout=timeout)

    def push(self, *replies) -> None:
        self.replies.extend(replies)

    def send_raw(self, text: str) -> None:
        self._server.sendall(text.encode())

    def close(self) -> None:
        for sock in (self._server, self.client_sock):
            try:
                sock.close()
            except OSError:
                pass

    def _reply_for(self, command: str):
        if command.endswith(".repl_initialize(content)"):
            if len(self.init_replies) > 1:
                return self.init_replies.popleft()
            return self.init_replies[0]
        if not self.replies:
            return json_block(None)
        reply = self.replies.popleft()
        return reply(command) if callable(reply) else reply

    def _serve(self) -> None:
        buf = b""
        while True:
            try:
                data = self._server.recv(65536)
            except OSError:
                return
            if not data:
                return
            buf += data
            while b"\n" in buf:
                line, buf = buf.split(b"\n", 1)
                command = line.decode()
                self.received.append(command)
                reply = self._reply_for(command)
                if reply is None:
                    continue
                try:
                    self._server.sendall(f"{reply}\n{self.repl_id}> ".encode())
                except OSError:
                    return


# ---------------------------------------------------------------------------
# Verb level
# ---------------------------------------------------------------------------


class FakeClient:
    """Stands in for ReplClient: records commands, answers from the browser script."""

    def __init__(self, browser: FakeBrowser, repl_id: str):
        self.browser = browser
        self.repl_id = repl_id
        self.sent: list[str] = []
        self.closed = False

    def __str__(self) -> str:
        return f"<FakeClient ID[{self.repl_id}]>"

    @property
    def connected(self) -> bool:
        return not self.closed

    def json_cmd(self, command: str, *, timeout=None) -> Outcome:
        self.sent.append(command)
        self.browser.sent.append(command)
        item = self.browser.script.popleft() if self.browser.script else None
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, Outcome):
            return item
        return Outcome.ok(item)

    def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """``client_factory`` for Repl; each connection gets the next REPL id."""

    def __init__(self):
        self.script: deque = deque()
        self.sent: list[str] = []
        self.clients: list[FakeClient] = []

    def __call__(self, config) -> FakeClient:
        client = FakeClient(self, f"repl{len(self.clients) + 1}")
        self.clients.append(client)
        return client

    def answer(self, *items) -> None:
        """Queue payloads (or Outcomes, or exceptions) for the next commands."""
        self.script.extend(items)

    @property
    def last(self) -> str:
        return self.sent[-1]
