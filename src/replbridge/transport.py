# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Persistent text-stream connection to the remote evaluator.

The evaluator speaks a telnet-style line protocol: commands go out as UTF-8
lines, responses are read until a prompt (or another marker) matches.  This
module only frames text; it knows nothing about prompts, JSON or sessions.

Error policy:
- connection refused at connect time → ``NoBrowserError`` (fatal)
- read deadline expired → ``TransportTimeout`` (a ``TimeoutError``)
- remote closed the stream → ``ConnectionError``
- anything else from the socket propagates unchanged
"""

from __future__ import annotations

import codecs
import logging
import re
import socket
import time
from contextlib import suppress

from .errors import NoBrowserError
from .logging_config import PROTOCOL_LOGGER

logger = logging.getLogger(__name__)
wire_logger = logging.getLogger(PROTOCOL_LOGGER)

DEFAULT_READ_TIMEOUT = 30.0
_RECV_SIZE = 65536


class TransportTimeout(TimeoutError):
    """No match for the awaited pattern before the read deadline."""

    def __init__(self, message: str, *, partial: str = "") -> None:
        super().__init__(message)
        self.partial = partial


class LineTransport:
    """Buffered reader/writer over a connected stream socket.

    NOT thread-safe: the Execution Engine serializes transactions.
    """

    def __init__(
        self,
        sock: socket.socket,
        *,
        timeout: float = DEFAULT_READ_TIMEOUT,
        encoding: str = "utf-8",
        log_calls: bool = False,
    ) -> None:
        self._sock: socket.socket | None = sock
        self.timeout = timeout
        self.encoding = encoding
        self.log_calls = log_calls
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @classmethod
    def connect(cls, host: str, port: int, *, timeout: float = DEFAULT_READ_TIMEOUT, **kwargs) -> LineTransport:
        """Open a TCP connection to the evaluator."""
        logger.debug("Connecting to %s:%d", host, port)
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except ConnectionRefusedError as exc:
            raise NoBrowserError(
                f"remote host unreachable: nothing is listening on {host}:{port}",
                host=host,
                port=port,
            ) from exc
        return cls(sock, timeout=timeout, **kwargs)

    @property
    def closed(self) -> bool:
        return self._sock is None

    def _socket(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionError("transport is closed")
        return self._sock

    def send(self, text: str) -> None:
        """Send one command.  A trailing newline is added when missing."""
        if not text.endswith("\n"):
            text += "\n"
        if self.log_calls:
            wire_logger.debug("[send >>] %s", text.rstrip("\n"))
        self._socket().sendall(text.encode(self.encoding))

    def read_until(
        self,
        pattern: str | re.Pattern[str],
        timeout: float | None = None,
        *,
        strip: str | re.Pattern[str] | bool | None = None,
    ) -> str:
        """Read until ``pattern`` matches and return everything up to the match end.

        Every occurrence of ``strip`` (default: ``pattern`` itself) is removed
        from the returned text; ``strip=False`` returns it untouched.  Bytes
        after the match stay buffered for the next read.
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        if strip is None:
            strip_re = regex
        elif strip is False:
            strip_re = None
        else:
            strip_re = re.compile(strip) if isinstance(strip, str) else strip

        budget = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + budget
        sock = self._socket()

        while True:
            match = regex.search(self._buffer)
            if match is not None:
                raw = self._buffer[: match.end()]
                self._buffer = self._buffer[match.end() :]
                text = strip_re.sub("", raw) if strip_re is not None else raw
                if self.log_calls:
                    wire_logger.debug("[recv <<] %s", text)
                return text

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TransportTimeout(
                    f"no match for {regex.pattern!r} within {budget:.1f}s",
                    partial=self._buffer,
                )
            sock.settimeout(remaining)
            try:
                chunk = sock.recv(_RECV_SIZE)
            except TimeoutError:
                raise TransportTimeout(
                    f"no match for {regex.pattern!r} within {budget:.1f}s",
                    partial=self._buffer,
                ) from None
            if not chunk:
                raise ConnectionError("connection closed by remote evaluator")
            self._buffer += self._decoder.decode(chunk)

    def drain(self) -> str:
        """Discard buffered and immediately readable text; return what was dropped."""
        sock = self._socket()
        dropped = [self._buffer]
        self._buffer = ""
        sock.setblocking(False)
        try:
            while True:
                try:
                    chunk = sock.recv(_RECV_SIZE)
                except (BlockingIOError, InterruptedError):
                    break
                if not chunk:
                    break
                dropped.append(self._decoder.decode(chunk))
        finally:
            sock.settimeout(self.timeout)
        text = "".join(dropped)
        if text.strip():
            logger.debug("Discarded %d stale characters from the stream", len(text))
        return text

    def close(self) -> None:
        """Close the socket.  Safe to call more than once."""
        sock, self._sock = self._sock, None
        if sock is None:
            return
        with suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        with suppress(OSError):
            sock.close()
        logger.debug("Transport closed")

    def __enter__(self) -> LineTransport:
        return self

    def __exit__(self, *args) -> None:
        self.close()
