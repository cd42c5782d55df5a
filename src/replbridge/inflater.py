# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Object Inflater: declarative mapping from remote objects to typed Python objects.

An ``InflaterSpec`` is a table of field descriptors.  The same table serves
both sides of the wire:

- ``spec.fields`` is shipped to the remote ``inflate_obj``/``inflate_all``
  functions, which evaluate each XPath relative to a root node and build a
  plain JavaScript object keyed by field name
- ``spec.inflate(raw)`` walks the decoded result and builds instances of
  the spec's result class, recursing into ``obj`` and ``list`` fields and
  applying each field's default-transformation chain

Example::

    EPISODE = InflaterSpec.define("episode", lambda s: (
        s.text("season", './td[@class="c0"]')
         .date("aired", './td[@class="c2"]')
    ))
    SHOW = (
        InflaterSpec()
        .text("title", "./h1")
        .list("episodes", ".//tr", EPISODE)
    )

Specs are validated while they are built (duplicate names, missing nested
specs, XPath syntax) and are frozen on first use.
"""

from __future__ import annotations

import datetime as dt
import keyword
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, make_dataclass
from enum import StrEnum
from typing import Any, ClassVar

from .errors import InvalidParamsError
from .xpath import xpath as _xpath

logger = logging.getLogger(__name__)

Transform = Callable[[Any], Any]

DEFAULT_DATE_FORMAT = "%m/%d/%Y"


class FieldKind(StrEnum):
    TEXT = "text"
    ATTR = "attr"
    OBJ = "obj"
    LIST = "list"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One descriptor.  ``name`` is None for the anonymous scope of ``with_()``."""

    name: str | None
    kind: FieldKind
    xpath: str
    attr: str | None = None
    nested: InflaterSpec | None = None

    def wire(self) -> dict:
        """Remote representation understood by ``repl.inflate_obj``."""
        out: dict[str, Any] = {"type": self.kind.value, "xpath": self.xpath}
        if self.name is not None:
            out["id"] = self.name
        if self.attr is not None:
            out["attr"] = self.attr
        if self.nested is not None:
            out["obj"] = self.nested.fields
        return out


@dataclass(slots=True)
class _NameOptions:
    name: str
    nested: InflaterSpec | None = None
    defaults: list[Transform] = field(default_factory=list)


def _as_transforms(default: Transform | Iterable[Transform] | None) -> list[Transform]:
    if default is None:
        return []
    if callable(default):
        return [default]
    transforms = list(default)
    if not all(callable(t) for t in transforms):
        raise InvalidParamsError("default transformations must be callables")
    return transforms


def parse_date(fmt: str = DEFAULT_DATE_FORMAT) -> Transform:
    """Transformation: ``str`` → ``datetime.date`` using ``fmt``; other values pass through."""

    def _parse(value: Any) -> Any:
        return dt.datetime.strptime(value.strip(), fmt).date() if isinstance(value, str) else value

    return _parse


def parse_datetime(fmt: str | None = None) -> Transform:
    """Transformation: ``str`` → ``datetime.datetime`` (ISO 8601 unless ``fmt`` is given)."""

    def _parse(value: Any) -> Any:
        if not isinstance(value, str):
            return value
        text = value.strip()
        return dt.datetime.strptime(text, fmt) if fmt else dt.datetime.fromisoformat(text)

    return _parse


class InflaterSpec:
    """Ordered field table plus the result class it inflates into."""

    _registry: ClassVar[dict[str, InflaterSpec]] = {}

    def __init__(self) -> None:
        self._fields: list[FieldSpec] = []
        self._names: dict[str, _NameOptions] = {}
        self._result_class: type | None = None
        self._frozen = False

    def __repr__(self) -> str:
        return f"<InflaterSpec names={list(self._names)}>"

    # ── Building ─────────────────────────────────────────────────────

    @property
    def names(self) -> list[str]:
        return list(self._names)

    @property
    def fields(self) -> list[dict]:
        """Wire form of the field table."""
        return [f.wire() for f in self._fields]

    def result(self, klass: type) -> InflaterSpec:
        """Inflate into ``klass`` (called with the field values as keyword arguments)."""
        self._check_mutable()
        self._result_class = klass
        return self

    def reserve(self, name: str, *, default: Transform | Iterable[Transform] | None = None) -> InflaterSpec:
        """Declare a result attribute that no XPath fills."""
        self._register(name, default=default)
        return self

    def text(self, name: str, xpath: str, *, default: Transform | Iterable[Transform] | None = None) -> InflaterSpec:
        """Text content of the node found by ``xpath``."""
        expr = _xpath(xpath)
        self._register(name, default=default)
        self._fields.append(FieldSpec(name, FieldKind.TEXT, expr))
        return self

    def attr(
        self,
        name: str,
        xpath: str,
        attr_name: str,
        *,
        default: Transform | Iterable[Transform] | None = None,
    ) -> InflaterSpec:
        """Value of attribute ``attr_name`` on the node found by ``xpath``."""
        expr = _xpath(xpath)
        if not attr_name:
            raise InvalidParamsError("attr_name must be a non-empty string")
        self._register(name, default=default)
        self._fields.append(FieldSpec(name, FieldKind.ATTR, expr, attr=str(attr_name)))
        return self

    def href(self, name: str, xpath: str, **kwargs: Any) -> InflaterSpec:
        return self.attr(name, xpath, "href", **kwargs)

    def date(
        self,
        name: str,
        xpath: str,
        *,
        attr: str | None = None,
        fmt: str = DEFAULT_DATE_FORMAT,
        default: Transform | Iterable[Transform] | None = None,
    ) -> InflaterSpec:
        """Text (or ``attr``) parsed to a ``date`` before any other default."""
        return self._scalar_with_parser(name, xpath, attr, parse_date(fmt), default)

    def datetime(
        self,
        name: str,
        xpath: str,
        *,
        attr: str | None = None,
        fmt: str | None = None,
        default: Transform | Iterable[Transform] | None = None,
    ) -> InflaterSpec:
        """Text (or ``attr``) parsed to a ``datetime`` before any other default."""
        return self._scalar_with_parser(name, xpath, attr, parse_datetime(fmt), default)

    def obj(self, name: str, xpath: str, spec: InflaterSpec) -> InflaterSpec:
        """A nested object rooted at the first node of ``xpath``."""
        self._nested(name, FieldKind.OBJ, xpath, spec)
        return self

    def list(self, name: str, xpath: str, spec: InflaterSpec) -> InflaterSpec:
        """A list of nested objects, one per node of ``xpath``."""
        self._nested(name, FieldKind.LIST, xpath, spec)
        return self

    def with_(self, xpath: str, spec: InflaterSpec) -> InflaterSpec:
        """Evaluate ``spec``'s fields relative to ``xpath`` and merge them into this object."""
        expr = _xpath(xpath)
        if not isinstance(spec, InflaterSpec):
            raise InvalidParamsError("expected an InflaterSpec")
        clashes = set(spec._names) & set(self._names)
        if clashes:
            raise InvalidParamsError(f"property name '{sorted(clashes)[0]}' already defined")
        self._check_mutable()
        self._fields.append(FieldSpec(None, FieldKind.OBJ, expr, nested=spec))
        for nm, opts in spec._names.items():
            self._names[nm] = _NameOptions(nm, nested=opts.nested, defaults=list(opts.defaults))
        return self

    def _scalar_with_parser(self, name, xpath, attr, parser: Transform, default) -> InflaterSpec:
        if attr:
            self.attr(name, xpath, attr)
        else:
            self.text(name, xpath)
        self._names[name].defaults = [parser, *_as_transforms(default)]
        return self

    def _nested(self, name: str, kind: FieldKind, xpath: str, spec: InflaterSpec) -> None:
        expr = _xpath(xpath)
        if not isinstance(spec, InflaterSpec):
            raise InvalidParamsError(f"{kind} field '{name}' requires a nested InflaterSpec")
        opts = self._register(name)
        opts.nested = spec
        self._fields.append(FieldSpec(name, kind, expr, nested=spec))

    def _register(self, name: str, *, default: Transform | Iterable[Transform] | None = None) -> _NameOptions:
        self._check_mutable()
        if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
            raise InvalidParamsError(f"invalid property name: {name!r}")
        if name in self._names:
            raise InvalidParamsError(f"property name '{name}' already defined")
        opts = _NameOptions(name, defaults=_as_transforms(default))
        self._names[name] = opts
        return opts

    def _check_mutable(self) -> None:
        if self._frozen:
            raise InvalidParamsError("InflaterSpec is frozen once it has been used")

    # ── Inflating ────────────────────────────────────────────────────

    @property
    def result_class(self) -> type:
        self._finalize()
        return self._result_class

    def _finalize(self) -> None:
        if self._frozen:
            return
        if self._result_class is None:
            self._result_class = make_dataclass(
                "Inflated",
                [(nm, Any, field(default=None)) for nm in self._names],
                module=__name__,
            )
        self._frozen = True

    def inflate(self, raw: Any) -> Any:
        """Inflate one raw mapping, or each mapping of a raw list."""
        self._finalize()
        if raw is None:
            return None
        if isinstance(raw, list):
            return [self._inflate_one(item) for item in raw]
        if isinstance(raw, dict):
            return self._inflate_one(raw)
        raise InvalidParamsError(f"cannot inflate {type(raw).__name__}; expected a mapping or a list")

    def _inflate_one(self, raw: Any) -> Any:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise InvalidParamsError(f"cannot inflate {type(raw).__name__}; expected a mapping")

        values: dict[str, Any] = {}
        for nm, opts in self._names.items():
            if nm not in raw:
                continue
            val = raw[nm]
            if opts.nested is not None:
                val = opts.nested.inflate(val)
            if opts.defaults:
                if isinstance(val, list):
                    val = [self._apply_defaults(opts.defaults, v) for v in val]
                else:
                    val = self._apply_defaults(opts.defaults, val)
            values[nm] = val
        return self._result_class(**values)

    @staticmethod
    def _apply_defaults(transforms: list[Transform], value: Any) -> Any:
        for transform in transforms:
            value = transform(value)
        return value

    # ── Registry ─────────────────────────────────────────────────────

    @classmethod
    def define(cls, key: str, builder: Callable[[InflaterSpec], InflaterSpec | None]) -> InflaterSpec:
        """Build the spec for ``key`` once and return the cached instance afterwards."""
        spec = cls._registry.get(key)
        if spec is None:
            spec = cls()
            built = builder(spec)
            if built is not None and built is not spec:
                raise InvalidParamsError("define() builder must configure the spec it is given")
            spec._finalize()
            cls._registry[key] = spec
            logger.debug("Inflater '%s' defined with fields %s", key, spec.names)
        return spec

    @classmethod
    def forget(cls, key: str | None = None) -> None:
        """Drop one cached definition, or all of them."""
        if key is None:
            cls._registry.clear()
        else:
            cls._registry.pop(key, None)
