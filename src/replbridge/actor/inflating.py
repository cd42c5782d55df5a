# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Inflation verbs: build typed objects from page content in one round trip.

The field table of an ``InflaterSpec`` travels to the evaluator, which
evaluates every XPath relative to the root element(s) and answers with plain
objects; ``InflaterSpec.inflate`` then turns those into result-class
instances.
"""

from __future__ import annotations

import logging
from typing import Any

from ..codegen import js_code, marshal
from ..errors import InvalidParamsError
from ..inflater import InflaterSpec
from ..xpath import xpath as _xpath

logger = logging.getLogger(__name__)


def _on_succ_inflate(meth: str, spec: InflaterSpec) -> str:
    return js_code(f"function(rc) {{ repl.rc_ok( repl.{meth}(rc, {marshal(spec.fields)}) ); }}")


def _check_spec(spec: Any) -> InflaterSpec:
    if not isinstance(spec, InflaterSpec):
        raise InvalidParamsError("expected an InflaterSpec")
    return spec


class InflatingMixin:
    """``inflate_obj`` / ``inflate_all``."""

    def inflate_obj(self, xpath: str, spec: InflaterSpec) -> Any:
        """Inflate one object rooted at the first element matching ``xpath``."""
        spec = _check_spec(spec)
        self._check_repl_lock()
        self.compile_callback(
            "wait_for_first_element",
            xpath=_xpath(xpath),
            on_succ=_on_succ_inflate("inflate_obj", spec),
        )
        raw = self.exec()
        obj = spec.inflate(raw) if isinstance(raw, dict) else None
        logger.debug("[INFLATE_OBJ] => %s", obj)
        return obj

    def inflate_all(self, xpath: str, spec: InflaterSpec) -> list[Any] | None:
        """Inflate one object per element matching ``xpath``."""
        spec = _check_spec(spec)
        self._check_repl_lock()
        self.compile_callback(
            "wait_for_elements",
            xpath=_xpath(xpath),
            on_succ=_on_succ_inflate("inflate_all", spec),
        )
        raw = self.exec()
        objs = spec.inflate(raw) if isinstance(raw, list) else None
        logger.debug("[INFLATE_ALL] => %d object(s)", len(objs) if objs is not None else 0)
        return objs
