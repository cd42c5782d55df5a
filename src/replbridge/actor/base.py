# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Actor: high-level browser verbs composed from the core.

Every verb follows the same shape:

1. check that this process holds the REPL lock
2. compile a unit (sync for immediate calls, async for callback calls)
3. execute it on the session's current engine
4. map the Outcome to a plain value: the payload when OK, ``None`` otherwise

A timed-out call leaves a remote callback that may still fire; when
``config.rotate_on_timeout`` is on, the Actor rotates the session's
connection so that late output never lands on a stream we still read.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from typing import Any

from ..codegen import (
    CodeGenerator,
    CodeUnit,
    js_code,
    js_func,
    js_object,
    js_on_succ,
    js_rc_ok,
    js_repl,
)
from ..errors import (
    ElementMissingError,
    FatalError,
    InvalidParamsError,
    LockReplFirstError,
    NavError,
    NoCookiesError,
)
from ..registry import ReplRegistry, get_registry
from ..retry import Retrying
from ..session import Repl
from ..xpath import xpath as _xpath

logger = logging.getLogger(__name__)

READY_STATE_COMPLETE = "complete"
FOUND = "FOUND"
CLICKED = "CLICKED"

CLICK_SETTLE_PAUSE = 0.5  # seconds between a click and polling readyState

# get_url(wait_for=...) defaults
GET_URL_RETRY = {"attempts": 15, "pause": 1, "timeout": "normal"}

_READY_STATE_COND = f"""function() {{
    var rc = repl.get_document().readyState;
    return (rc === '{READY_STATE_COMPLETE}') ? rc : null;
}}"""

UrlMatcher = str | re.Pattern[str] | Callable[[str], Any]


def _url_predicate(wait_for: UrlMatcher | None) -> Callable[[str], bool]:
    """Turn the ``wait_for`` argument of ``get_url`` into a URL test."""
    if wait_for is None:
        return lambda url: True
    if callable(wait_for) and not isinstance(wait_for, re.Pattern):
        return lambda url: bool(wait_for(url))
    if isinstance(wait_for, re.Pattern):
        pattern = wait_for
    else:
        pattern = re.compile(re.escape(str(wait_for)))
    return lambda url: pattern.search(url) is not None


def _xpaths(xpaths: tuple[str, ...]) -> str:
    """One locator for several XPaths: their union."""
    if not xpaths:
        raise InvalidParamsError("at least 1 xpath must be provided")
    return " | ".join(_xpath(x) for x in xpaths)


class BaseActor(Retrying):
    """Verbs bound to one session.

    Args:
        repl: the session to drive.
        require_lock: raise ``LockReplFirstError`` from every verb unless
            this process holds the REPL lock.
        registry: where the lock is looked up; defaults to the process-wide
            registry.
    """

    def __init__(
        self,
        repl: Repl,
        *,
        require_lock: bool = True,
        registry: ReplRegistry | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not isinstance(repl, Repl):
            raise InvalidParamsError("repl is a required parameter")
        self.repl = repl
        self.require_lock = require_lock
        self._registry = registry
        self._sleep = sleep
        self.gen = CodeGenerator()
        self._compiled: CodeUnit | None = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.repl}>"

    @property
    def repl_id(self) -> str | None:
        return self.repl.repl_id

    @property
    def registry(self) -> ReplRegistry:
        return self._registry if self._registry is not None else get_registry()

    def new_client(self) -> str:
        """Rotate the session's connection; returns the new REPL id."""
        return self.repl.new_client()

    def _check_repl_lock(self) -> None:
        if self.require_lock and not self.registry.repl_locked:
            raise LockReplFirstError()

    # ── Compile / execute ────────────────────────────────────────────

    def _bind_generator(self) -> CodeGenerator:
        if self.repl.repl_id is None:
            self.gen.flush()
            raise FatalError(f"{self.repl} is closed")
        self.gen.repl_id = self.repl.repl_id
        return self.gen

    def code(self, *stmts: Any) -> BaseActor:
        self.gen.code(*stmts)
        return self

    def compile(self) -> CodeUnit:
        """Compile pending statements as a sync unit."""
        self._compiled = self._bind_generator().compile_sync()
        return self._compiled

    def code_rc_set(self, expr: Any) -> BaseActor:
        self.gen.code_rc_set(expr)
        return self

    def compile_callback(self, meth: str, params: dict[str, Any] | None = None, **kwargs: Any) -> CodeUnit:
        """Compile pending statements plus ``repl.meth({params})`` as an async unit."""
        self._compiled = self._bind_generator().compile_async(meth, params, **kwargs)
        return self._compiled

    def exec(self, unit: CodeUnit | None = None, *, timeout: float | None = None) -> Any:
        """Execute ``unit`` (default: the last compiled one) and return its payload.

        Returns None on any ERROR outcome; a timed-out call rotates the
        connection first when the session is configured to.
        """
        unit = unit if unit is not None else self._compiled
        if unit is None:
            raise InvalidParamsError("nothing has been compiled")

        outcome = self.repl.engine.execute(unit, timeout)
        logger.debug("EvalRC: %s", outcome)
        if outcome.timed_out and self.repl.config.rotate_on_timeout:
            logger.warning("%s timed out; rotating connection", type(self).__name__)
            self.new_client()
        return outcome.result

    def compile_exec(self, *, timeout: float | None = None) -> Any:
        return self.exec(self.compile(), timeout=timeout)

    # ── Log ──────────────────────────────────────────────────────────

    def get_repl_log(self) -> Any:
        """Contents of the evaluator's log buffer."""
        self._check_repl_lock()
        self.compile_callback("GetLog")
        rc = self.exec()
        logger.debug("===REPL LOG===\n%s", rc)
        return rc

    # ── Navigation ───────────────────────────────────────────────────

    def wait_page_load(self) -> bool:
        """Poll ``document.readyState`` until it is ``complete``."""
        self._check_repl_lock()
        self._compile_wait_page_load()
        rc = self.exec()
        loaded = isinstance(rc, str) and READY_STATE_COMPLETE in rc
        logger.debug("[WAIT_PAGE_LOAD] => %s", loaded)
        return loaded

    def _compile_wait_page_load(self) -> CodeUnit:
        return self.compile_callback("retry_until", cond=js_code(_READY_STATE_COND))

    def goto_url(self, url: str, *, pause: float | None = None) -> str | None:
        """Navigate to ``url`` and wait for the page to load.

        Returns the loaded URL, or None when navigation or the load wait
        failed.  ``pause`` sleeps that many seconds after a successful load.
        """
        self._check_repl_lock()
        self.compile_callback("goto_url", url=str(url))
        rc = self.exec()
        if not isinstance(rc, str):
            rc = None
        elif not self.wait_page_load():
            rc = None
        elif pause and pause > 0:
            self._sleep(pause)
        logger.debug("[GOTO_URL %s] => %s", url, rc)
        return rc

    def get_url(self, wait_for: UrlMatcher | None = None, **retry: Any) -> str | None:
        """URL of the current page.

        Without arguments the URL is returned immediately.  With
        ``wait_for`` (a substring, a compiled regex or a callable) the URL is
        polled until it matches, which rides out login redirects.  Retry
        options (``timeout``, ``attempts``, ``pause``) default to 15 attempts
        one second apart.
        """
        self._check_repl_lock()

        if wait_for is None and not retry:
            url = self.exec(self._compile_get_url())
            logger.debug("[GET_URL] => %s", url)
            return url if isinstance(url, str) else None

        matches = _url_predicate(wait_for)

        def _check() -> str | None:
            # recompiled per attempt: a timeout may have rotated the connection
            url = self.exec(self._compile_get_url())
            if not isinstance(url, str):
                return None
            logger.debug("url: |%s|", url)
            return url if matches(url) else None

        url = self.retry_until(_check, **{**GET_URL_RETRY, **retry})
        logger.debug("[GET_URL wait_for=%r] => %s", wait_for, url)
        return url

    def _compile_get_url(self) -> CodeUnit:
        # null makes get_url() use the current document
        return self.code_rc_set(js_repl("get_url", None)).compile()

    def nav_page(
        self,
        url: str,
        *,
        pause: float | None = None,
        raise_: bool | str = False,
        **options: Any,
    ) -> str | None:
        """Make sure the browser is on ``url``; navigate only if it is not.

        Waits until the browser URL matches ``wait_for`` (default: ``url``).
        """
        self._check_repl_lock()
        options.setdefault("wait_for", url)

        page_url = self.get_url()
        if isinstance(page_url, str) and page_url.lower() == str(url).lower():
            logger.debug("Already on %s; not navigating", url)
        else:
            logger.debug("Navigating to %s", url)
            self.goto_url(url, pause=pause)
            page_url = self.get_url(**options)

        if page_url is None and raise_:
            raise NavError(raise_ if isinstance(raise_, str) else f"failed to navigate to '{url}'")
        logger.debug("[NAV_PAGE] => %s", page_url)
        return page_url

    def get_referrer(self) -> str | None:
        self._check_repl_lock()
        self._compile_get_referrer()
        rc = self.exec()
        return rc.strip() if isinstance(rc, str) else rc

    def _compile_get_referrer(self) -> CodeUnit:
        return self.code_rc_set(js_repl("get_referrer", None)).compile()

    # ── Elements ─────────────────────────────────────────────────────

    def wait_for(self, *xpaths: str, raise_: bool | str = False) -> bool:
        """Wait for elements matching any of ``xpaths`` to appear.

        Returns False when they never do, unless ``raise_`` is set: True
        raises ``ElementMissingError`` with a default message, a string is
        used as the message.
        """
        locator = _xpaths(xpaths)
        self._check_repl_lock()
        self.compile_callback(
            "wait_for_elements",
            xpath=locator,
            on_succ=js_func(js_rc_ok(FOUND)),
        )
        rc = self.exec()
        found = isinstance(rc, str) and FOUND in rc
        if not found and raise_:
            message = raise_ if isinstance(raise_, str) else f"Never found '{xpaths[0]}'"
            raise ElementMissingError(message, xpath=locator)
        logger.debug("[WAIT_FOR] => %s", found)
        return found

    def get_html(self, xpath: str) -> list[str] | None:
        """Outer HTML of every element matching ``xpath``."""
        self._check_repl_lock()
        self._compile_get_html(_xpath(xpath))
        return self.exec()

    def _compile_get_html(self, xpath: str) -> CodeUnit:
        return self._compile_on_elements(xpath, "repl.get_html(rc)")

    def get_text(self, xpath: str) -> list[str] | None:
        """Text content of every element matching ``xpath``."""
        self._check_repl_lock()
        self._compile_get_text(_xpath(xpath))
        return self.exec()

    def _compile_get_text(self, xpath: str) -> CodeUnit:
        return self._compile_on_elements(xpath, "repl.get_text(rc)")

    def get_attrs(self, xpath: str) -> list[dict] | None:
        """HTML attributes of every element matching ``xpath``."""
        self._check_repl_lock()
        self._compile_get_attrs(_xpath(xpath))
        return self.exec()

    def _compile_get_attrs(self, xpath: str) -> CodeUnit:
        return self._compile_on_elements(xpath, "repl.get_attrs(rc)")

    def _compile_on_elements(self, xpath: str, expr: str) -> CodeUnit:
        return self.compile_callback(
            "wait_for_elements",
            xpath=xpath,
            on_succ=js_on_succ(js_code(expr)),
        )

    def click(self, xpath: str, *, wait_for: UrlMatcher | None = None, **retry: Any) -> bool | str:
        """Click the first element matching ``xpath`` and wait for the page load.

        Returns:
            False when the click failed (no load wait is attempted),
            ``"clicked"`` when the click worked but the page never finished
            loading, True when both succeeded.  With ``wait_for`` the URL is
            then polled as in ``get_url``; its result is not reflected here.
        """
        self._check_repl_lock()
        self._compile_click(_xpath(xpath))
        rc = self.exec()
        logger.debug("do_click rc: %s", rc)
        if rc != CLICKED:
            return False

        self._sleep(CLICK_SETTLE_PAUSE)
        if not self.wait_page_load():
            return "clicked"
        if wait_for is not None:
            self.get_url(wait_for, **retry)
        return True

    def _compile_click(self, xpath: str) -> CodeUnit:
        return self.compile_callback(
            "wait_for_first_element",
            xpath=xpath,
            on_succ=js_on_succ(js_code("repl.do_click(rc)")),
        )

    # ── Cookies ──────────────────────────────────────────────────────

    def get_doc_cookies(self, *, required: bool = False) -> dict | None:
        """Cookies of the current document as a name → value mapping.

        ``required`` raises ``NoCookiesError`` when there are none.
        """
        self._check_repl_lock()
        self._compile_get_doc_cookies()
        cookies = self.exec()
        if required and not cookies:
            raise NoCookiesError("the document has no cookies")
        return cookies

    def _compile_get_doc_cookies(self) -> CodeUnit:
        return self.code_rc_set(js_repl("get_doc_cookies", None)).compile()

    def get_all_cookies(self, *, host: str, required: bool = False) -> list[dict] | None:
        """Every browser cookie whose host matches ``host`` (case-insensitive)."""
        if not isinstance(host, str) or not host:
            raise InvalidParamsError("host is a required parameter")
        self._check_repl_lock()
        self.code_rc_set(js_repl("get_all_cookies", js_object(host=host))).compile()
        cookies = self.exec()
        if required and not cookies:
            raise NoCookiesError(f"no cookies for host '{host}'")
        return cookies

    # ── Frames ───────────────────────────────────────────────────────

    def get_frames(self) -> dict | None:
        """The window's frame tree: ``{url, name, num_frames, frames: [...]}``."""
        self._check_repl_lock()
        self.code_rc_set(js_repl("get_frames_info"))
        return self.compile_exec()
