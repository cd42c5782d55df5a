# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for set_form_fields / get_form_fields."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from replbridge.actor.forms import _canonical_fields
from replbridge.envelope import Outcome
from replbridge.errors import InvalidParamsError


class TestCanonicalFields:
    def test_set_accepts_every_shape(self):
        fields = [
            ("//input[@name='q']", "shoes"),
            ["//input[@name='n']", "2"],
            {"xpath": "//select", "value": "red"},
            SimpleNamespace(xpath=" //textarea ", value="hi"),
        ]
        assert _canonical_fields("set", fields) == [
            ["//input[@name='q']", "shoes"],
            ["//input[@name='n']", "2"],
            ["//select", "red"],
            ["//textarea", "hi"],
        ]

    def test_get_accepts_bare_xpaths(self):
        assert _canonical_fields("get", ["//a", ("//b", None), {"xpath": "//c"}]) == ["//a", "//b", "//c"]

    @pytest.mark.parametrize("bad", [[], "//a", None, ()])
    def test_requires_non_empty_list(self, bad):
        with pytest.raises(InvalidParamsError, match="non-empty list"):
            _canonical_fields("get", bad)

    def test_value_must_be_string_when_setting(self):
        with pytest.raises(InvalidParamsError, match="index 1: expected value to be a string"):
            _canonical_fields("set", [("//a", "x"), ("//b", 2)])

    def test_bare_xpath_has_no_value_to_set(self):
        with pytest.raises(InvalidParamsError):
            _canonical_fields("set", ["//a"])

    def test_field_without_xpath(self):
        with pytest.raises(InvalidParamsError, match="index 0 provides no xpath"):
            _canonical_fields("get", [42])

    def test_mapping_with_empty_xpath(self):
        with pytest.raises(InvalidParamsError, match="expected xpath to be a non-empty string"):
            _canonical_fields("get", [{"value": "x"}])

    def test_bad_xpath_syntax(self):
        with pytest.raises(InvalidParamsError, match="invalid XPath"):
            _canonical_fields("get", ["//input[@name="])


class TestFormVerbs:
    def test_set_form_fields(self, actor, browser):
        browser.answer([True, False])
        assert actor.set_form_fields([("//input[@name='q']", "shoes"), ("//input[@name='n']", "2")]) == [
            True,
            False,
        ]
        assert "rc = repl.apply( " in browser.last
        assert """[["//input[@name='q']", "shoes"], ["//input[@name='n']", "2"]]""" in browser.last
        assert "function(item) { return repl.set_form_value(item[0], item[1]); }" in browser.last

    def test_get_form_fields(self, actor, browser):
        browser.answer(["shoes", None])
        assert actor.get_form_fields(["//input[@name='q']", "//input[@name='missing']"]) == ["shoes", None]
        assert """["//input[@name='q']", "//input[@name='missing']"]""" in browser.last
        assert "function(xpath) { return repl.get_form_value(xpath); }" in browser.last

    def test_remote_failure(self, actor, browser):
        browser.answer(Outcome.error("TypeError: form is null"))
        assert actor.get_form_fields(["//input"]) is None

    def test_invalid_fields_are_not_sent(self, actor, browser):
        with pytest.raises(InvalidParamsError):
            actor.set_form_fields([("//input", None)])
        assert browser.sent == []
