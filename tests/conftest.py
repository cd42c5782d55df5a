# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures.

Socket-level tests talk to a ``FakeEvaluator`` across a socketpair; verb-level
tests run a ``Repl`` whose connections come from a ``FakeBrowser``.  Every test
gets its own process registry with the lock file under ``tmp_path``.
"""

try:
    import replbridge  # noqa: F401
except ImportError:
    raise ImportError("replbridge is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from replbridge import registry as registry_mod
from replbridge.actor import Actor, FramesActor
from replbridge.client import ReplClient
from replbridge.config import ReplConfig
from replbridge.registry import ReplRegistry
from replbridge.session import Repl
from tests._fakes import FakeBrowser, FakeEvaluator


@pytest.fixture
def evaluator():
    ev = FakeEvaluator().start()
    yield ev
    ev.close()


@pytest.fixture
def fast_config(tmp_path):
    return ReplConfig(timeout=2.0, exec_timeout=2.0, init_retry_pause=0.01, lock_path=tmp_path / "MozRepl.lock")


@pytest.fixture
def client(evaluator, fast_config):
    c = ReplClient(fast_config, transport=evaluator.transport(), sleep=lambda s: None)
    yield c
    c.close()


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def repl(browser, fast_config):
    r = Repl(fast_config, client_factory=browser)
    yield r
    r.close()


@pytest.fixture(autouse=True)
def test_registry(tmp_path):
    """Isolated process-wide registry."""
    reg = ReplRegistry(tmp_path / "locks" / "MozRepl.lock")
    registry_mod._reset_for_testing(reg)
    yield reg
    reg.close_all_repls()
    registry_mod._reset_for_testing(None)


@pytest.fixture
def locked(test_registry):
    with test_registry.lock_repl():
        yield test_registry


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def actor(repl, locked, sleeps):
    """Actor holding the lock; its sleeps are recorded, not slept."""
    return Actor(repl, sleep=sleeps.append)


@pytest.fixture
def frames_actor(repl, locked, sleeps):
    return FramesActor(repl, sleep=sleeps.append)
