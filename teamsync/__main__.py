"""Command-line entry for teamsync."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the teamsync CLI."""
    parser = argparse.ArgumentParser(
        prog="teamsync",
        description="TeamSync - team scheduling calendar server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m teamsync                          # Serve on the default port (8080)
  python -m teamsync --port 3000              # Serve on port 3000
  python -m teamsync --store data/team.json   # Use a specific local store file
  python -m teamsync --config teamsync.yaml   # Load settings from a YAML file
        """,
    )
    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or TEAMSYNC_SERVER_PORT)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML or JSON config file (default: ./teamsync.yaml if present)",
    )
    parser.add_argument(
        "--store",
        metavar="PATH",
        help="Local JSON store file; selects the local backend",
    )
    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the teamsync CLI."""
    args = _create_parser().parse_args(argv)
    try:
        run_server(args)
    except ValueError as exc:
        print(f"teamsync: configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    sys.exit(0)


if __name__ == "__main__":
    main()
