"""Command line entry point: serve the API or rebuild ratings from the ledger."""
from __future__ import annotations

import argparse
import json
import logging
import sys

import uvicorn

from .api import create_app
from .config import configure_logging, load_settings
from .defaults import DEFAULT_LEADERBOARD
from .ledger import replay
from .snapshot import SnapshotStore

logger = logging.getLogger("elo_board")


def _serve(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    if args.host:
        settings.host = args.host
    if args.port is not None:
        settings.port = args.port
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Server listening on port %d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


def _replay(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    configure_logging(settings.log_level)
    log_path = args.log_file or settings.log_path
    with open(log_path, "r", encoding="utf-8") as fh:
        ratings = replay(fh, DEFAULT_LEADERBOARD)
    json.dump(ratings, sys.stdout, indent=2)
    sys.stdout.write("\n")
    if args.write:
        SnapshotStore(settings.leaderboard_path).save(ratings)
        logger.info("Snapshot %s rebuilt from %s", settings.leaderboard_path, log_path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="elo_board", description="ELO leaderboard service")
    parser.add_argument("--config", default=None, help="TOML settings file")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=_serve)

    rebuild = sub.add_parser("replay", help="rebuild the leaderboard from the ledger")
    rebuild.add_argument("--log-file", default=None, help="ledger to replay (default: configured one)")
    rebuild.add_argument("--write", action="store_true", help="overwrite the snapshot with the result")
    rebuild.set_defaults(func=_replay)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
