# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the navigation, element, cookie and log verbs of Actor.

The FakeBrowser answers each remote transaction in order; assertions look at
the generated JavaScript the verbs sent.
"""

from __future__ import annotations

import re

import pytest

from replbridge.actor import Actor
from replbridge.actor.base import CLICK_SETTLE_PAUSE
from replbridge.config import ReplConfig
from replbridge.envelope import Outcome
from replbridge.errors import (
    ElementMissingError,
    FatalError,
    InvalidParamsError,
    LockReplFirstError,
    NavError,
    NoCookiesError,
)
from replbridge.session import Repl

# ── Construction and locking ─────────────────────────────────────────


class TestConstruction:
    def test_requires_repl(self):
        with pytest.raises(InvalidParamsError, match="repl is a required parameter"):
            Actor(None)

    def test_verbs_require_lock(self, repl):
        with pytest.raises(LockReplFirstError):
            repl.actor().get_url()

    def test_lock_can_be_waived(self, repl, browser):
        browser.answer("https://example.com/")
        assert Actor(repl, require_lock=False).get_url() == "https://example.com/"

    def test_closed_session(self, actor, repl):
        repl.close()
        with pytest.raises(FatalError, match="closed"):
            actor.get_url()

    def test_exec_without_compile(self, actor):
        with pytest.raises(InvalidParamsError, match="nothing has been compiled"):
            actor.exec()

    def test_repr(self, actor):
        assert repr(actor) == "<Actor <REPL ID[repl1]>>"

    def test_units_target_current_repl_id(self, actor, browser):
        actor.get_url()
        assert browser.last.rstrip().endswith("})(repl1);")


# ── Execution and rotation ───────────────────────────────────────────


class TestRotation:
    def test_timeout_rotates_connection(self, actor, repl, browser):
        browser.answer(Outcome.timeout())
        assert actor.get_url() is None
        assert repl.repl_id == "repl2"
        assert browser.clients[0].closed
        actor.get_url()
        assert browser.last.rstrip().endswith("})(repl2);")

    def test_polling_follows_rotation(self, actor, repl, browser):
        browser.answer(Outcome.timeout(), "https://example.com/home")
        assert actor.get_url("/home", pause=0) == "https://example.com/home"
        assert repl.repl_id == "repl2"
        assert browser.sent[0].rstrip().endswith("})(repl1);")
        assert browser.sent[1].rstrip().endswith("})(repl2);")
        assert browser.clients[1].sent == browser.sent[1:]

    def test_rotation_can_be_disabled(self, browser, locked):
        repl = Repl(ReplConfig(rotate_on_timeout=False), client_factory=browser)
        browser.answer(Outcome.timeout())
        assert Actor(repl).get_url() is None
        assert repl.repl_id == "repl1"

    def test_error_outcome_does_not_rotate(self, actor, repl, browser):
        browser.answer(Outcome.error("ReferenceError: x"))
        assert actor.get_url() is None
        assert repl.repl_id == "repl1"

    def test_transport_failure_is_an_error_outcome(self, actor, browser):
        browser.answer(ConnectionError("closed"))
        assert actor.get_url() is None


# ── Navigation ───────────────────────────────────────────────────────


class TestGetUrl:
    def test_immediate(self, actor, browser):
        browser.answer("https://example.com/")
        assert actor.get_url() == "https://example.com/"
        assert "rc = repl.get_url( null );" in browser.last
        assert len(browser.sent) == 1

    def test_non_string_result(self, actor, browser):
        browser.answer({"not": "a url"})
        assert actor.get_url() is None

    def test_wait_for_substring(self, actor, browser):
        browser.answer("https://example.com/login", "https://example.com/login", "https://example.com/home")
        assert actor.get_url("/home", pause=0) == "https://example.com/home"
        assert len(browser.sent) == 3
        assert len(set(browser.sent)) == 1

    def test_wait_for_substring_is_literal(self, actor, browser):
        browser.answer("https://example.com/aXb")
        assert actor.get_url("a.b", attempts=1) is None

    def test_wait_for_regex(self, actor, browser):
        browser.answer("https://example.com/item/42")
        assert actor.get_url(re.compile(r"/item/\d+$")) == "https://example.com/item/42"

    def test_wait_for_callable(self, actor, browser):
        browser.answer("https://a/", "https://b/")
        assert actor.get_url(lambda url: url.startswith("https://b"), pause=0) == "https://b/"

    def test_wait_for_never_matches(self, actor, browser):
        assert actor.get_url("/never", attempts=3, pause=0) is None
        assert len(browser.sent) == 3


class TestGotoUrl:
    def test_loads(self, actor, browser, sleeps):
        browser.answer("https://example.com/", "complete")
        assert actor.goto_url("https://example.com/") == "https://example.com/"
        assert 'repl.goto_url( { "url": "https://example.com/" } )' in browser.sent[0]
        assert "repl.retry_until(" in browser.sent[1]
        assert "readyState" in browser.sent[1]
        assert sleeps == []

    def test_pause_after_load(self, actor, browser, sleeps):
        browser.answer("https://example.com/", "complete")
        actor.goto_url("https://example.com/", pause=2)
        assert sleeps == [2]

    def test_navigation_failure_skips_load_wait(self, actor, browser):
        browser.answer(Outcome.error("Error: bad url"))
        assert actor.goto_url("nope") is None
        assert len(browser.sent) == 1

    def test_load_never_completes(self, actor, browser, sleeps):
        browser.answer("https://example.com/", Outcome.error("timeout"))
        assert actor.goto_url("https://example.com/", pause=2) is None
        assert sleeps == []

    def test_wait_page_load(self, actor, browser):
        browser.answer("complete")
        assert actor.wait_page_load() is True
        browser.answer("interactive")
        assert actor.wait_page_load() is False


class TestNavPage:
    def test_already_there(self, actor, browser):
        browser.answer("https://EXAMPLE.com/")
        assert actor.nav_page("https://example.com/") == "https://EXAMPLE.com/"
        assert len(browser.sent) == 1

    def test_navigates(self, actor, browser):
        browser.answer("about:blank", "https://example.com/", "complete", "https://example.com/")
        assert actor.nav_page("https://example.com/") == "https://example.com/"
        assert "repl.goto_url(" in browser.sent[1]
        assert len(browser.sent) == 4

    def test_custom_wait_for(self, actor, browser):
        browser.answer("about:blank", "https://example.com/login", "complete", "https://example.com/home")
        url = actor.nav_page("https://example.com/login", wait_for="/home")
        assert url == "https://example.com/home"

    def test_raise(self, actor, browser):
        browser.answer("about:blank", Outcome.error("Error"))
        with pytest.raises(NavError, match="failed to navigate to 'https://example.com/'"):
            actor.nav_page("https://example.com/", raise_=True, attempts=1)

    def test_failure_returns_none(self, actor, browser):
        browser.answer("about:blank", Outcome.error("Error"))
        assert actor.nav_page("https://example.com/", attempts=1) is None

    def test_referrer_is_stripped(self, actor, browser):
        browser.answer("  https://ref.example/ \n")
        assert actor.get_referrer() == "https://ref.example/"
        assert "repl.get_referrer( null )" in browser.last


# ── Elements ─────────────────────────────────────────────────────────


class TestWaitFor:
    def test_found(self, actor, browser):
        browser.answer("FOUND")
        assert actor.wait_for("//a", "//button") is True
        assert (
            'repl.wait_for_elements( { "xpath": "//a | //button",'
            '"on_succ": function(rc) { repl.rc_ok( "FOUND" ); } } )'
        ) in browser.last

    def test_not_found(self, actor, browser):
        browser.answer(Outcome.error("Error: elements not found"))
        assert actor.wait_for("//a") is False

    def test_raise_default_message(self, actor, browser):
        browser.answer(Outcome.error("Error"))
        with pytest.raises(ElementMissingError, match="Never found '//a'") as exc_info:
            actor.wait_for("//a", "//b", raise_=True)
        assert exc_info.value.xpath == "//a | //b"

    def test_raise_custom_message(self, actor, browser):
        browser.answer(Outcome.error("Error"))
        with pytest.raises(ElementMissingError, match="^login form missing$"):
            actor.wait_for("//form", raise_="login form missing")

    def test_requires_xpath(self, actor):
        with pytest.raises(InvalidParamsError):
            actor.wait_for()

    def test_rejects_bad_xpath_before_sending(self, actor, browser):
        with pytest.raises(InvalidParamsError):
            actor.wait_for("//a[")
        assert browser.sent == []


class TestElementContent:
    @pytest.mark.parametrize(
        ("verb", "remote"),
        [("get_html", "repl.get_html(rc)"), ("get_text", "repl.get_text(rc)"), ("get_attrs", "repl.get_attrs(rc)")],
    )
    def test_waits_then_reads(self, actor, browser, verb, remote):
        browser.answer(["value"])
        assert getattr(actor, verb)("  //h1 ") == ["value"]
        assert "repl.wait_for_elements(" in browser.last
        assert '"xpath": "//h1"' in browser.last
        assert f"function(rc) {{ repl.rc_ok( {remote} ); }}" in browser.last

    def test_error_is_none(self, actor, browser):
        browser.answer(Outcome.error("Error"))
        assert actor.get_html("//h1") is None


class TestClick:
    def test_clicked_and_loaded(self, actor, browser, sleeps):
        browser.answer("CLICKED", "complete")
        assert actor.click("//button[@id='go']") is True
        assert "repl.wait_for_first_element(" in browser.sent[0]
        assert "repl.do_click(rc)" in browser.sent[0]
        assert sleeps == [CLICK_SETTLE_PAUSE]

    def test_click_failed(self, actor, browser, sleeps):
        browser.answer(Outcome.error("Error: not found"))
        assert actor.click("//button") is False
        assert len(browser.sent) == 1
        assert sleeps == []

    def test_clicked_but_not_loaded(self, actor, browser):
        browser.answer("CLICKED", None)
        assert actor.click("//button") == "clicked"

    def test_wait_for_url_after_click(self, actor, browser):
        browser.answer("CLICKED", "complete", "https://example.com/done")
        assert actor.click("//button", wait_for="/done", pause=0) is True
        assert "repl.get_url( null )" in browser.last


# ── Cookies, frames, log ─────────────────────────────────────────────


class TestCookies:
    def test_doc_cookies(self, actor, browser):
        browser.answer({"sid": "abc"})
        assert actor.get_doc_cookies() == {"sid": "abc"}
        assert "rc = repl.get_doc_cookies( null );" in browser.last

    def test_doc_cookies_required(self, actor, browser):
        browser.answer({})
        with pytest.raises(NoCookiesError):
            actor.get_doc_cookies(required=True)

    def test_doc_cookies_empty_not_required(self, actor, browser):
        browser.answer({})
        assert actor.get_doc_cookies() == {}

    def test_all_cookies(self, actor, browser):
        browser.answer([{"name": "sid", "value": "1", "host": ".example.com"}])
        assert actor.get_all_cookies(host="example.com")[0]["name"] == "sid"
        assert 'repl.get_all_cookies( { "host": "example.com" } )' in browser.last

    def test_all_cookies_required(self, actor, browser):
        browser.answer([])
        with pytest.raises(NoCookiesError, match="example.com"):
            actor.get_all_cookies(host="example.com", required=True)

    def test_all_cookies_requires_host(self, actor):
        with pytest.raises(InvalidParamsError):
            actor.get_all_cookies(host="")


class TestMisc:
    def test_get_frames(self, actor, browser):
        tree = {"url": "https://example.com/", "name": "", "num_frames": 0, "frames": []}
        browser.answer(tree)
        assert actor.get_frames() == tree
        assert "rc = repl.get_frames_info(  );" in browser.last

    def test_get_repl_log(self, actor, browser):
        browser.answer("line 1\nline 2")
        assert actor.get_repl_log() == "line 1\nline 2"
        assert "repl.GetLog( {  } )" in browser.last
