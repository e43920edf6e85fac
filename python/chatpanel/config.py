"""
chatpanel/config.py

PanelConfig: everything the runtime needs, built from CLI flags.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_NAMES = ("Alice", "bob", "Carol", "dave", "Eve", "mallory")


@dataclass(frozen=True)
class PanelConfig:
    nick: str = "me"
    room: str = "lobby"
    topic: str = ""
    names: tuple[str, ...] = DEFAULT_NAMES
    script_namespace: Optional[str] = None
    load_delay: float = 0.5          # seconds before the surface reports ready
    lookup_latency: float = 0.0      # artificial name-lookup delay
    settings: dict[str, Any] = field(default_factory=dict)
    history: int = 5                 # demo history messages pushed before ready

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PanelConfig":
        names: tuple[str, ...] = DEFAULT_NAMES
        if getattr(args, "names_file", None):
            names = read_names_file(args.names_file)
        elif getattr(args, "names", None):
            names = tuple(n.strip() for n in args.names.split(",") if n.strip())

        settings: dict[str, Any] = {}
        if getattr(args, "settings", None):
            settings = json.loads(args.settings)
            if not isinstance(settings, dict):
                raise ValueError("--settings must be a JSON object")

        return cls(
            nick=args.nick,
            room=args.room,
            topic=args.topic or "",
            names=names,
            script_namespace=args.namespace,
            load_delay=args.load_delay,
            lookup_latency=args.lookup_latency,
            settings=settings,
            history=args.history,
        )


def read_names_file(path: str) -> tuple[str, ...]:
    """One name per line; blank lines and '#' comments ignored."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return tuple(
        line.strip() for line in lines
        if line.strip() and not line.strip().startswith("#")
    )


def add_panel_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--nick", default="me", help="Your display name")
    parser.add_argument("--room", default="lobby", help="Room name")
    parser.add_argument("--topic", default="", help="Initial room topic")
    parser.add_argument("--names", help="Comma-separated names for Tab completion")
    parser.add_argument("--names-file", help="File with one completion name per line")
    parser.add_argument(
        "--namespace", default=None,
        help="Object prefix for procedure calls, e.g. JabbR",
    )
    parser.add_argument(
        "--load-delay", type=float, default=0.5,
        help="Seconds before the transcript surface reports ready",
    )
    parser.add_argument(
        "--lookup-latency", type=float, default=0.0,
        help="Artificial delay for name lookups (seconds)",
    )
    parser.add_argument(
        "--settings", default=None,
        help='One-time surface settings as JSON, e.g. \'{"html5video": false}\'',
    )
    parser.add_argument(
        "--history", type=int, default=5,
        help="Number of demo history messages pushed before the surface is ready",
    )
