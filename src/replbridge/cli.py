# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""replbridge CLI: run single browser verbs from the shell.

Usage:
    python -m replbridge.cli [--host HOST] [--port PORT] nav URL
    python -m replbridge.cli url
    python -m replbridge.cli html XPATH
    python -m replbridge.cli text XPATH
    python -m replbridge.cli attrs XPATH
    python -m replbridge.cli click XPATH
    python -m replbridge.cli wait XPATH [XPATH ...]
    python -m replbridge.cli cookies [--host HOST_PATTERN]
    python -m replbridge.cli tabs
    python -m replbridge.cli frames
    python -m replbridge.cli log

Each command takes the REPL lock, opens a session, runs one verb and prints
its result as YAML (default) or JSON.  Exit status is 1 when the verb
failed (returned nothing) or raised, 130 on Ctrl-C.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from typing import Any

import yaml

from .actor import Actor
from .config import ReplConfig
from .errors import ReplBridgeError
from .logging_config import configure
from .registry import get_registry
from .session import open_repl


def cmd_nav(args: argparse.Namespace, actor: Actor) -> Any:
    """Navigate (unless already there) and print the landing URL."""
    return actor.nav_page(args.url, pause=args.pause)


def cmd_url(args: argparse.Namespace, actor: Actor) -> Any:
    if args.wait_for:
        return actor.get_url(args.wait_for)
    return actor.get_url()


def cmd_html(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.get_html(args.xpath)


def cmd_text(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.get_text(args.xpath)


def cmd_attrs(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.get_attrs(args.xpath)


def cmd_click(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.click(args.xpath)


def cmd_wait(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.wait_for(*args.xpaths)


def cmd_cookies(args: argparse.Namespace, actor: Actor) -> Any:
    if args.cookie_host:
        return actor.get_all_cookies(host=args.cookie_host)
    return actor.get_doc_cookies()


def cmd_tabs(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.get_all_tabinfo()


def cmd_frames(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.get_frames()


def cmd_log(args: argparse.Namespace, actor: Actor) -> Any:
    return actor.get_repl_log()


def _dump(result: Any, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(result, ensure_ascii=False, indent=2, default=str)
    if isinstance(result, str):
        return result
    return yaml.safe_dump(result, allow_unicode=True, default_flow_style=False, sort_keys=False).rstrip("\n")


def _run(args: argparse.Namespace, command: Callable[[argparse.Namespace, Actor], Any]) -> int:
    config = ReplConfig.from_env(host=args.host, port=args.port, timeout=args.timeout)
    registry = get_registry()
    with registry.lock_repl():
        with open_repl(config, registry=registry) as repl:
            result = command(args, repl.actor())
    print(_dump(result, args.format))
    return 0 if result not in (None, False) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive a browser through its MozRepl-style REPL",
        prog="python -m replbridge.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUG logging")
    parser.add_argument("--json-logs", action="store_true", help="Log JSON lines to stderr")
    parser.add_argument("--host", type=str, help="REPL host (default: $REPLBRIDGE_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="REPL port (default: $REPLBRIDGE_PORT or 4242)")
    parser.add_argument("--timeout", type=float, help="Connect/read timeout in seconds")
    parser.add_argument(
        "--format",
        type=str,
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_nav = subparsers.add_parser("nav", help="Navigate to URL unless already there")
    p_nav.add_argument("url", metavar="URL")
    p_nav.add_argument("--pause", type=float, help="Seconds to sleep after the page loaded")

    p_url = subparsers.add_parser("url", help="Print the current page URL")
    p_url.add_argument("--wait-for", type=str, metavar="SUBSTRING", help="Poll until the URL contains SUBSTRING")

    for name, help_text in (
        ("html", "Outer HTML of matching elements"),
        ("text", "Text content of matching elements"),
        ("attrs", "Attributes of matching elements"),
        ("click", "Click the first matching element and wait for the page load"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("xpath", metavar="XPATH")

    p_wait = subparsers.add_parser("wait", help="Wait for elements to appear")
    p_wait.add_argument("xpaths", metavar="XPATH", nargs="+")

    p_cookies = subparsers.add_parser("cookies", help="Document cookies, or all cookies for a host")
    p_cookies.add_argument("--host", dest="cookie_host", type=str, metavar="HOST_PATTERN")

    subparsers.add_parser("tabs", help="List open tabs")
    subparsers.add_parser("frames", help="Show the frame tree")
    subparsers.add_parser("log", help="Dump the REPL log buffer")
    return parser


COMMANDS: dict[str, Callable[[argparse.Namespace, Actor], Any]] = {
    "nav": cmd_nav,
    "url": cmd_url,
    "html": cmd_html,
    "text": cmd_text,
    "attrs": cmd_attrs,
    "click": cmd_click,
    "wait": cmd_wait,
    "cookies": cmd_cookies,
    "tabs": cmd_tabs,
    "frames": cmd_frames,
    "log": cmd_log,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure(json_output=args.json_logs, level="DEBUG" if args.verbose else None)

    try:
        status = _run(args, COMMANDS[args.command])
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except ReplBridgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
