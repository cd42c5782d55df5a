# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Form verbs: read and write form field values in one round trip."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Literal

from ..codegen import js_code, js_repl
from ..errors import InvalidParamsError
from ..xpath import xpath as _xpath

logger = logging.getLogger(__name__)

_SET_FUNC = js_code("function(item) { return repl.set_form_value(item[0], item[1]); }")
_GET_FUNC = js_code("function(xpath) { return repl.get_form_value(xpath); }")


def _canonical_fields(action: Literal["get", "set"], form_fields: Sequence[Any]) -> list:
    """Normalize field descriptions to XPaths (get) or ``[xpath, value]`` pairs (set).

    Each field may be an XPath string, an ``(xpath, value)`` pair, a mapping
    with ``xpath``/``value`` keys, or an object with ``xpath``/``value``
    attributes.
    """
    if isinstance(form_fields, (str, bytes)) or not isinstance(form_fields, Sequence) or not form_fields:
        raise InvalidParamsError("expected form_fields to be a non-empty list")

    out: list = []
    for index, field in enumerate(form_fields):
        if isinstance(field, str):
            xpath, value = field, None
        elif isinstance(field, Mapping):
            xpath, value = field.get("xpath"), field.get("value")
        elif isinstance(field, (tuple, list)) and len(field) == 2:
            xpath, value = field
        elif hasattr(field, "xpath"):
            xpath, value = field.xpath, getattr(field, "value", None)
        else:
            raise InvalidParamsError(f"form field index {index} provides no xpath")

        if not isinstance(xpath, str) or not xpath.strip():
            raise InvalidParamsError(f"field at index {index}: expected xpath to be a non-empty string")
        xpath = _xpath(xpath)

        if action == "get":
            out.append(xpath)
            continue
        if not isinstance(value, str):
            raise InvalidParamsError(f"field at index {index}: expected value to be a string")
        out.append([xpath, value])
    return out


class FormsMixin:
    """``set_form_fields`` / ``get_form_fields``."""

    def set_form_fields(self, form_fields: Sequence[Any]) -> list[bool] | None:
        """Set each field; returns a parallel list of per-field success flags."""
        self._check_repl_lock()
        rc = self._exec_apply(_canonical_fields("set", form_fields), _SET_FUNC)
        logger.debug("[SET_FORM_FIELDS] => %s", rc)
        return rc

    def get_form_fields(self, form_fields: Sequence[Any]) -> list[Any] | None:
        """Parallel list of field values (None where a field is missing)."""
        self._check_repl_lock()
        rc = self._exec_apply(_canonical_fields("get", form_fields), _GET_FUNC)
        logger.debug("[GET_FORM_FIELDS] => %s", rc)
        return rc

    def _exec_apply(self, items: list, func: str) -> Any:
        self.code_rc_set(js_repl("apply", items, func)).compile()
        return self.exec()
