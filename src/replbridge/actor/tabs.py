# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tab verbs.

The evaluator binds its REPL object to the window that was active when the
connection was initialized.  Every verb that changes the active tab
(add, activate, close, reset) therefore rotates the connection so the next
verb talks to the newly active tab.

A tab selector is either an ``int`` (the tab's index in the tab browser) or a
``str`` URL pattern matched against each tab's location.
"""

from __future__ import annotations

import logging
from typing import Any

from ..codegen import RESULT_VAR, JsCode, js_code, js_get, js_repl, marshal
from ..errors import InvalidParamsError

logger = logging.getLogger(__name__)

ABOUT_BLANK = "about:blank"

TabSelector = int | str


def _find_first_tab_params(tab_selector: TabSelector) -> tuple[int | None, str | None]:
    """``find_first_tab(index, url_pattern)`` arguments for a selector."""
    if isinstance(tab_selector, int) and not isinstance(tab_selector, bool):
        return (tab_selector, None)
    if isinstance(tab_selector, str) and tab_selector:
        return (None, tab_selector)
    raise InvalidParamsError("a tab selector must be an int index or a URL pattern string")


def _js_throw_no_tab(description: str) -> JsCode:
    """Throw remotely when the previous statement found no tab."""
    return js_code(f"if (!{RESULT_VAR}) {{ throw new Error({marshal(description + ' failed')}); }}")


def _describe(params: tuple[int | None, str | None]) -> str:
    index, url = params
    return f"find_first_tab() with index '{index}'" if url is None else f"find_first_tab() with URL '{url}'"


class TabsMixin:
    """Verbs over the browser's tabs."""

    def tabs_reset(self) -> bool:
        """Close all tabs and open one fresh blank tab."""
        self._check_repl_lock()
        self.compile_callback("tabs_reset")
        rc = self.exec()
        reset = rc == ABOUT_BLANK
        if reset:
            self.new_client()
        logger.debug("[TABS_RESET] => %s", reset)
        return reset

    def add_tab(self, url: str | None = None) -> str | None:
        """Open a new tab (blank unless ``url`` is given) and make it active."""
        self._check_repl_lock()
        if url:
            self.compile_callback("tab_new", url=str(url))
        else:
            self.compile_callback("tab_new")
        rc = self.exec()
        if rc is not None:
            self.new_client()
        logger.debug("[ADD_TAB] => %s", rc)
        return rc

    def get_all_tabinfo(self) -> list[dict] | None:
        """``{tabbrowser_index, location, title}`` for every open tab."""
        self._check_repl_lock()
        self.code_rc_set(js_repl("get_all_tabs_info")).compile()
        return self.exec()

    def selected_tab(self) -> dict | None:
        """Info about the currently selected tab."""
        self._check_repl_lock()
        self.code_rc_set(js_repl("selected_tab"))
        self.code(_js_throw_no_tab("selected_tab()"))
        self.code_rc_set(js_repl("tab_info", js_get(RESULT_VAR)))
        tab = self.compile_exec()
        logger.debug("[SELECTED_TAB] => %s", tab)
        return tab

    def tab_info(self, tab_selector: TabSelector) -> dict | None:
        """Info about the first tab matching ``tab_selector``."""
        self._check_repl_lock()
        self._code_find_tab(tab_selector)
        self.code_rc_set(js_repl("tab_info", js_get(RESULT_VAR)))
        tab = self.compile_exec()
        logger.debug("[TAB_INFO %r] => %s", tab_selector, tab)
        return tab

    def activate_tab(self, tab_selector: TabSelector) -> bool:
        """Select the first tab matching ``tab_selector``."""
        self._check_repl_lock()
        self._code_find_tab(tab_selector)
        self.code_rc_set(js_repl("tab_activate", js_get(RESULT_VAR)))
        activated = self.compile_exec() is True
        if activated:
            logger.debug("activate_tab successful; restarting client...")
            self.new_client()
        return activated

    def close_tab(self, tab_selector: TabSelector | None = None) -> bool:
        """Close the first tab matching ``tab_selector`` (default: the selected tab)."""
        self._check_repl_lock()
        if tab_selector is None:
            self.code_rc_set(js_repl("selected_tab"))
            self.code(_js_throw_no_tab("selected_tab()"))
        else:
            self._code_find_tab(tab_selector)
        self.code_rc_set(js_repl("tab_close", js_get(RESULT_VAR)))
        rc = self.compile_exec()
        closed = _all_true(rc)
        if closed:
            logger.debug("tab_close successful; restarting client...")
            self.new_client()
        return closed

    def _code_find_tab(self, tab_selector: TabSelector) -> None:
        params = _find_first_tab_params(tab_selector)
        self.code_rc_set(js_repl("find_first_tab", *params))
        self.code(_js_throw_no_tab(_describe(params)))


def _all_true(rc: Any) -> bool:
    # tab_close() answers with one flag per closed tab
    if isinstance(rc, list):
        return bool(rc) and all(r is True for r in rc)
    return rc is True
