#!/usr/bin/env python3
"""
Chat panel client — interactive panel + call-expression tool.

Usage:
    # Interactive panel with Tab completion against a roster
    python chat_client.py panel --nick alice --room lobby --names Alice,bob,Carol

    # Same, with a namespaced surface API and a slow surface load
    python chat_client.py panel --namespace JabbR --load-delay 2

    # Print the call expression the bridge sends for a procedure
    python chat_client.py emit addHistory '[{"id": "1", "content": "hi"}]' true
"""
from __future__ import annotations

import argparse
import json
import logging
import sys

from chatpanel.bridge import CommandEncodeError, build_call_script
from chatpanel.config import PanelConfig, add_panel_arguments


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Chat room panel with a deferred command bridge and Tab completion",
    )
    parser.add_argument("--log-file", default=None, help="Write log records to this file")
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    sub = parser.add_subparsers(dest="command", required=True)

    panel = sub.add_parser("panel", help="Run the interactive chat panel")
    add_panel_arguments(panel)

    emit = sub.add_parser("emit", help="Print the call expression for a procedure")
    emit.add_argument("name", help="Procedure name, e.g. addMessage")
    emit.add_argument("args", nargs="*", help="Arguments as JSON values")
    emit.add_argument("--namespace", default=None, help="Object prefix, e.g. JabbR")

    return parser


def configure_logging(log_file: str | None, level: str) -> None:
    # The panel owns the terminal, so records only go to a file.
    if not log_file:
        logging.getLogger().addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=log_file,
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)-7s %(threadName)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.log_level)

    try:
        if args.command == "emit":
            return _cmd_emit(args)

        if args.command == "panel":
            # Import here to avoid pulling in prompt_toolkit for emit
            from chatpanel.tea.runtime import PanelRuntime
            PanelRuntime(PanelConfig.from_args(args)).run()
            return 0

    except KeyboardInterrupt:
        print("\n⚠️  Interrupted")
        return 0
    except (OSError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1
    return 2


# ──────────────────────────────────────────────────────────────────────────────
# Sub-command implementations
# ──────────────────────────────────────────────────────────────────────────────

def _cmd_emit(args: argparse.Namespace) -> int:
    try:
        values = tuple(json.loads(a) for a in args.args)
    except json.JSONDecodeError as e:
        print(f"❌ Invalid JSON argument: {e}", file=sys.stderr)
        return 1
    try:
        print(build_call_script(args.name, values, args.namespace))
    except CommandEncodeError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
