# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Frame-aware verbs.

``FramesActor`` offers the same verbs as ``Actor`` but runs the
element, cookie and referrer verbs against the document of one frame,
chosen with ``switch_to(frame_url)``.  The frame is located remotely by
matching ``frame_url`` (case-insensitive, literal) against each frame's
location.

``get_url`` and ``wait_page_load`` fall back to the top-level document when
no frame is selected; the other frame-aware verbs raise
``NoFrameUrlError``.
"""

from __future__ import annotations

import logging
from typing import Any

from ..codegen import CodeUnit, js_code, js_get, js_object, js_on_succ, js_repl, js_set
from ..errors import InvalidParamsError, NoFrameUrlError
from ..xpath import xpath as _xpath

logger = logging.getLogger(__name__)

FRAME_DOC_VAR = "frame_doc"

_FRAME_READY_STATE_COND = f"""function() {{
    var rc = {FRAME_DOC_VAR}.readyState;
    return (rc === 'complete') ? rc : null;
}}"""


class FramesMixin:
    """Overrides the compile hooks of ``BaseActor`` to target one frame."""

    def __init__(self, *args: Any, frame_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.frame_url: str | None = None
        if frame_url is not None:
            self.switch_to(frame_url)

    def switch_to(self, frame_url: str) -> None:
        """Direct subsequent verbs at the frame whose URL contains ``frame_url``."""
        if not isinstance(frame_url, str) or not frame_url:
            raise InvalidParamsError("frame_url must be a non-empty string")
        logger.debug("Switching to frame '%s'", frame_url)
        self.frame_url = frame_url

    def _require_frame(self) -> str:
        if not isinstance(self.frame_url, str):
            raise NoFrameUrlError("select a frame with switch_to() first")
        return self.frame_url

    def _code_frame_doc(self) -> None:
        frame_url = self._require_frame()
        self.code(js_set({FRAME_DOC_VAR: js_repl("frame_document", js_object(frame_url=frame_url))}))

    # ── Compile hooks ────────────────────────────────────────────────

    def _compile_get_url(self) -> CodeUnit:
        if self.frame_url is None:
            return super()._compile_get_url()
        self._code_frame_doc()
        return self.code_rc_set(js_repl("get_url", js_get(FRAME_DOC_VAR))).compile()

    def _compile_wait_page_load(self) -> CodeUnit:
        if self.frame_url is None:
            return super()._compile_wait_page_load()
        self._code_frame_doc()
        return self.compile_callback("retry_until", cond=js_code(_FRAME_READY_STATE_COND))

    def _compile_click(self, xpath: str) -> CodeUnit:
        return self.compile_callback(
            "frame_wait_for_first_element",
            frame_url=self._require_frame(),
            xpath=xpath,
            on_succ=js_on_succ(js_code("repl.do_click(rc)")),
        )

    def _compile_get_html(self, xpath: str) -> CodeUnit:
        return self._compile_on_frame_elements(xpath, "repl.get_html(rc)")

    def _compile_get_attrs(self, xpath: str) -> CodeUnit:
        return self._compile_on_frame_elements(xpath, "repl.get_attrs(rc)")

    def _compile_get_text(self, xpath: str) -> CodeUnit:
        return self._compile_on_frame_elements(xpath, "repl.get_text(rc)")

    def _compile_on_frame_elements(self, xpath: str, expr: str) -> CodeUnit:
        return self.compile_callback(
            "frame_wait_for_elements",
            frame_url=self._require_frame(),
            xpath=xpath,
            on_succ=js_on_succ(js_code(expr)),
        )

    def _compile_get_doc_cookies(self) -> CodeUnit:
        self._code_frame_doc()
        return self.code_rc_set(js_repl("get_doc_cookies", js_get(FRAME_DOC_VAR))).compile()

    def _compile_get_referrer(self) -> CodeUnit:
        self._code_frame_doc()
        return self.code_rc_set(js_repl("get_referrer", js_get(FRAME_DOC_VAR))).compile()

    # ── Frame-only verbs ─────────────────────────────────────────────

    def check_for_html(self, xpath: str) -> list[str] | None:
        """Evaluate ``xpath`` in the frame once, without waiting."""
        self._check_repl_lock()
        frame_url = self._require_frame()
        self.code_rc_set(js_repl("frame_check_for_html", js_object(frame_url=frame_url, xpath=_xpath(xpath))))
        self.compile()
        rc = self.exec()
        logger.debug("[CHECK_FOR_HTML] => %s", rc)
        return rc
