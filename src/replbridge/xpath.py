# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""XPath helpers for building locators sent to the remote evaluator.

Expressions are checked locally with lxml before they are shipped, so a
typo fails fast with ``InvalidParamsError`` instead of as a remote
exception deep inside a callback transaction.
"""

from __future__ import annotations

from functools import lru_cache

from lxml import etree

from .errors import InvalidParamsError

_AT_NAME = "@name"


@lru_cache(maxsize=512)
def _check_syntax(expr: str) -> None:
    try:
        etree.XPath(expr)
    except (etree.XPathError, ValueError) as exc:
        raise InvalidParamsError(f"invalid XPath {expr!r}: {exc}") from None


def xpath(expr: str, *, validate: bool = True) -> str:
    """Normalize an XPath expression: strip surrounding whitespace and check syntax.

    Leading/trailing whitespace is allowed so expressions can be laid out
    readably inside f-strings.
    """
    if not isinstance(expr, str) or not expr.strip():
        raise InvalidParamsError("expected xpath to be a non-empty string")
    expr = expr.strip()
    if validate:
        _check_syntax(expr)
    return expr


def has_class(klass: str) -> str:
    """Predicate: ``klass`` is one of the node's HTML classes.

    >>> xpath(f".//li[{has_class('foo')}]")
    ".//li[contains(concat(' ', @class, ' '), ' foo ')]"
    """
    return f"contains(concat(' ', @class, ' '), ' {klass} ')"


def downcase(expr: str) -> str:
    """Lower-case an XPath string value."""
    return f"translate({expr},'ABCDEFGHIJKLMNOPQRSTUVWXYZ','abcdefghijklmnopqrstuvwxyz')"


def meta_value(attr_name: str, *, nocase: bool = False) -> str:
    """XPath to the ``content`` of a ``<meta name=...>`` in the document head."""
    name = downcase(_AT_NAME) if nocase else _AT_NAME
    return xpath(f'/html/head/meta[{name}="{attr_name.lower()}"]/@content')
