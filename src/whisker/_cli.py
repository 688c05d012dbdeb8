"""Whisker CLI — whisker demo.

Entry point for the ``whisker`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the whisker CLI."""
    parser = argparse.ArgumentParser(
        prog="whisker",
        description="Development helpers for Chirp apps.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # whisker demo
    demo_parser = subparsers.add_parser(
        "demo",
        help="Serve a demo page with log forwarding and a runcode control",
    )
    demo_parser.add_argument(
        "root", nargs="?", default=".", help="Directory containing whisker.yaml/.toml",
    )
    demo_parser.add_argument("--host", default=None, help="Bind address")
    demo_parser.add_argument("--port", type=int, default=None, help="Bind port")
    demo_parser.add_argument(
        "--type",
        dest="editor",
        choices=("text", "textarea", "ace"),
        default="text",
        help="Editor used by the runcode control",
    )
    demo_parser.add_argument(
        "--show-log",
        action="store_true",
        default=None,
        help="Forward browser console.log messages to this terminal",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from whisker import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from whisker._errors import WhiskerError
    from whisker.app import demo

    if args.command == "demo":
        try:
            demo(
                root=args.root,
                editor=args.editor,
                host=args.host,
                port=args.port,
                show_log=args.show_log,
            )
        except WhiskerError as exc:
            print(f"whisker: {exc}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
