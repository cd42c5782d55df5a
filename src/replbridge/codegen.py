# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Code Generator: build strings of remote JavaScript from Python values.

Two kinds of argument flow into a generated call:

- data: Python values marshalled to JavaScript literals (JSON encoding)
- code: JavaScript source flagged with ``js_code()`` and passed through raw

Generated calls freely mix both, e.g. a list of XPaths next to an inline
``function(rc) { ... }`` callback.

``CodeGenerator`` accumulates statements and compiles them into a
``CodeUnit`` wrapped in the try/catch boilerplate that reports back through
``repl.rc_ok()`` / ``repl.rc_fail()``.  Compiling always empties the
accumulator.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from .errors import InvalidParamsError

REPL_VAR = "repl"
RESULT_VAR = "rc"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


class JsCode(str):
    """JavaScript source that must not be marshalled."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"JsCode({str.__repr__(self)})"


def js_code(source: Any) -> JsCode:
    """Flag ``source`` as raw JavaScript (a value or a block of code)."""
    return source if isinstance(source, JsCode) else JsCode(str(source))


def marshal(value: Any) -> str:
    """Marshal a Python value to a JavaScript literal.

    ``JsCode`` passes through untouched, also when nested inside a dict or
    list.  Everything else is JSON-encoded.
    """
    if isinstance(value, JsCode):
        return str(value)
    if isinstance(value, Mapping):
        items = (f"{json.dumps(str(k))}: {marshal(v)}" for k, v in value.items())
        return "{" + ", ".join(items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(marshal(v) for v in value) + "]"
    try:
        return json.dumps(value)
    except TypeError:
        raise InvalidParamsError(f"cannot marshal {type(value).__name__} to JavaScript") from None


literal = marshal


def js_params(values: Iterable[Any]) -> str:
    """Comma-joined marshalled parameter list."""
    return ",".join(marshal(v) for v in values)


def js_call(name: str, *args: Any) -> JsCode:
    """``name(arg, ...)``."""
    return JsCode(f"{name}({js_params(args)})")


def js_repl(meth: str, *args: Any) -> JsCode:
    """Call a function of the remote REPL object: ``repl.meth( args )``."""
    return JsCode(f"{REPL_VAR}.{meth}( {js_params(args)} )")


def js_object(pairs: Mapping[str, Any] | None = None, **kwargs: Any) -> JsCode:
    """An object literal whose values are marshalled individually.

    Used for the single "params" argument of callback-style remote functions.
    """
    merged = dict(pairs or {}, **kwargs)
    body = ",".join(f'"{name}": {marshal(val)}' for name, val in merged.items())
    return JsCode(f"{{ {body} }}")


def js_set(pairs: Mapping[str, Any] | None = None, **kwargs: Any) -> JsCode:
    """Assign one expression to one variable: ``var = expr``."""
    merged = dict(pairs or {}, **kwargs)
    if len(merged) != 1:
        raise InvalidParamsError("only a single variable is supported")
    ((var, expr),) = merged.items()
    return JsCode(f"{var} = {marshal(expr)}")


def js_get(var: str) -> JsCode:
    return JsCode(str(var))


def js_return(expr: Any) -> JsCode:
    return JsCode(f"return {marshal(expr)}")


def js_rc_ok(expr: Any) -> JsCode:
    return JsCode(f"{REPL_VAR}.rc_ok( {marshal(expr)} )")


def js_rc_fail(expr: Any) -> JsCode:
    return JsCode(f"{REPL_VAR}.rc_fail( {marshal(expr)} )")


def js_func(*stmts: Any) -> JsCode:
    """Anonymous single-argument function wrapping ``stmts``."""
    body = ";".join(str(s) for s in stmts)
    return JsCode(f"function({RESULT_VAR}) {{ {body}; }}")


def js_on_succ(expr: Any) -> JsCode:
    """Callback that forwards ``expr`` to the success reporter."""
    return JsCode(f"function({RESULT_VAR}) {{ {REPL_VAR}.rc_ok( {marshal(expr)} ); }}")


# ── Compiled units ───────────────────────────────────────────────────


class ExecMode(StrEnum):
    SYNC = "sync"  # reports rc_ok(rc) as soon as the statements ran
    ASYNC = "async"  # success is reported later by a remote callback


@dataclass(frozen=True, slots=True)
class CodeUnit:
    """One compiled, ready-to-send block of remote code."""

    source: str
    mode: ExecMode = ExecMode.SYNC

    def __str__(self) -> str:
        return self.source


_SYNC_TEMPLATE = """\
(function({repl}) {{
  try {{
    var {rc};
    {body}
    {repl}.rc_ok({rc});
  }} catch(e) {{
    {repl}.rc_fail(e.name, e.message ? e.message : e);
  }};
}})({repl_id});
"""

_ASYNC_TEMPLATE = """\
(function({repl}) {{
  try {{
    {body}
  }} catch(e) {{
    {repl}.rc_fail(e.name, e.message ? e.message : e);
  }};
}})({repl_id});
"""


class CodeGenerator:
    """Statement accumulator bound to one remote REPL object."""

    def __init__(self, repl_id: str = REPL_VAR) -> None:
        self.repl_id = repl_id
        self._code: list[str] = []

    @property
    def repl_id(self) -> str:
        return self._repl_id

    @repl_id.setter
    def repl_id(self, value: str) -> None:
        if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
            raise InvalidParamsError(f"invalid REPL identifier: {value!r}")
        self._repl_id = value

    @property
    def statements(self) -> list[str]:
        """Pending statements since the last compile (a copy)."""
        return list(self._code)

    def code(self, *stmts: Any) -> CodeGenerator:
        """Append statements; each one is terminated with ``;``."""
        self._code.extend(f"{s};\n" for s in stmts)
        return self

    def code_rc_set(self, expr: Any) -> CodeGenerator:
        """Append ``rc = expr``."""
        return self.code(js_set({RESULT_VAR: expr}))

    def flush(self) -> list[str]:
        """Drain and return the pending statements."""
        pending, self._code = self._code, []
        return pending

    def compile_sync(self) -> CodeUnit:
        """Wrap pending statements so the value left in ``rc`` is reported.

        At least one statement should assign ``rc``; otherwise the unit
        reports ``null``.
        """
        body = " ".join(self.flush())
        source = _SYNC_TEMPLATE.format(repl=REPL_VAR, rc=RESULT_VAR, body=body, repl_id=self.repl_id)
        return CodeUnit(source, ExecMode.SYNC)

    def compile_code(self, *stmts: Any) -> CodeUnit:
        """``code(*stmts)`` followed by ``compile_sync()``."""
        return self.code(*stmts).compile_sync()

    def compile_async(self, meth: str, params: Mapping[str, Any] | None = None, **kwargs: Any) -> CodeUnit:
        """Compile a callback transaction around ``repl.meth({params})``.

        The remote task starts, the current remote execution returns, and the
        task later reports through rc_ok()/rc_fail() on its own.  Only a
        synchronous exception while starting it is reported here.
        """
        self.code(js_repl(meth, js_object(params, **kwargs)))
        body = " ".join(self.flush())
        source = _ASYNC_TEMPLATE.format(repl=REPL_VAR, body=body, repl_id=self.repl_id)
        return CodeUnit(source, ExecMode.ASYNC)
