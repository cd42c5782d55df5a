# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for ReplConfig defaults, validation and environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from replbridge.config import LOCK_REPL_BASENAME, ReplConfig, default_lock_path
from replbridge.errors import InvalidParamsError

_ENV_VARS = (
    "REPLBRIDGE_HOST",
    "REPLBRIDGE_PORT",
    "REPLBRIDGE_TIMEOUT",
    "REPLBRIDGE_EXEC_TIMEOUT",
    "REPLBRIDGE_LOCK_PATH",
    "REPLBRIDGE_LOG_CALLS",
    "REPLBRIDGE_LOG_COMPILED",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_values(self):
        config = ReplConfig()
        assert (config.host, config.port) == ("127.0.0.1", 4242)
        assert config.timeout == 30.0
        assert config.exec_timeout == 30.0
        assert config.init_retry_pause == 2.0
        assert config.rotate_on_timeout is True
        assert config.log_repl_calls is False

    def test_lock_path(self):
        assert default_lock_path().name == LOCK_REPL_BASENAME
        assert ReplConfig().lock_path == default_lock_path()

    def test_lock_path_is_coerced(self):
        assert isinstance(ReplConfig(lock_path="/tmp/x.lock").lock_path, Path)

    @pytest.mark.parametrize("kwargs", [{"host": ""}, {"port": 0}, {"port": 70000}, {"timeout": 0}])
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidParamsError):
            ReplConfig(**kwargs)


class TestFromEnv:
    def test_reads_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("REPLBRIDGE_HOST", "10.0.0.5")
        monkeypatch.setenv("REPLBRIDGE_PORT", "4343")
        monkeypatch.setenv("REPLBRIDGE_TIMEOUT", "5")
        monkeypatch.setenv("REPLBRIDGE_EXEC_TIMEOUT", "12.5")
        monkeypatch.setenv("REPLBRIDGE_LOCK_PATH", str(tmp_path / "repl.lock"))
        monkeypatch.setenv("REPLBRIDGE_LOG_CALLS", "yes")
        monkeypatch.setenv("REPLBRIDGE_LOG_COMPILED", "0")
        config = ReplConfig.from_env()
        assert config.host == "10.0.0.5"
        assert config.port == 4343
        assert config.timeout == 5.0
        assert config.exec_timeout == 12.5
        assert config.lock_path == tmp_path / "repl.lock"
        assert config.log_repl_calls is True
        assert config.log_compiled is False

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("REPLBRIDGE_PORT", "4343")
        assert ReplConfig.from_env(port=5000).port == 5000

    def test_none_overrides_are_ignored(self, monkeypatch):
        monkeypatch.setenv("REPLBRIDGE_HOST", "box")
        assert ReplConfig.from_env(host=None, port=None).host == "box"

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("REPLBRIDGE_PORT", "forty-two")
        with pytest.raises(InvalidParamsError, match="REPLBRIDGE_PORT"):
            ReplConfig.from_env()

    def test_with_overrides(self):
        base = ReplConfig()
        changed = base.with_overrides(port=4343, host=None)
        assert changed.port == 4343
        assert changed.host == base.host
        assert base.port == 4242
