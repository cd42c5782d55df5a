# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the exception taxonomy."""

from __future__ import annotations

import pytest

import replbridge
from replbridge.errors import (
    ElementMissingError,
    FatalError,
    InvalidParamsError,
    LockReplFirstError,
    MaxAttemptsError,
    NavError,
    NoBrowserError,
    NoCookiesError,
    NoFrameUrlError,
    ReplBridgeError,
    ReplInitError,
    RetryableError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls", [NoBrowserError, ReplInitError, InvalidParamsError, NoFrameUrlError, MaxAttemptsError]
    )
    def test_fatal(self, cls):
        assert issubclass(cls, FatalError)
        assert not issubclass(cls, RetryableError)

    @pytest.mark.parametrize("cls", [LockReplFirstError, NavError, ElementMissingError, NoCookiesError])
    def test_retryable(self, cls):
        assert issubclass(cls, RetryableError)
        assert not issubclass(cls, FatalError)

    def test_common_root(self):
        assert issubclass(FatalError, ReplBridgeError)
        assert issubclass(RetryableError, ReplBridgeError)

    def test_invalid_params_is_value_error(self):
        with pytest.raises(ValueError):
            raise InvalidParamsError("bad")

    def test_exported_from_package(self):
        for name in ("FatalError", "RetryableError", "LockReplFirstError", "NoBrowserError"):
            assert getattr(replbridge, name) is getattr(replbridge.errors, name)


class TestAttributes:
    def test_no_browser_carries_address(self):
        err = NoBrowserError(host="h", port=1)
        assert str(err) == "remote host unreachable"
        assert (err.host, err.port) == ("h", 1)

    def test_lock_repl_first_default_message(self):
        assert str(LockReplFirstError()) == LockReplFirstError.DESC

    def test_element_missing_carries_xpath(self):
        err = ElementMissingError("never found", xpath="//a")
        assert err.xpath == "//a"
