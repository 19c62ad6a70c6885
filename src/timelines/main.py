"""Command-line entry point — one subcommand per source."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys

from timelines.config import TwitterConfig, load_config
from timelines.errors import DecodeError, FetchError, PersistError
from timelines.jobs import run_sync

logger = logging.getLogger("timelines")

EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timelines",
        description="Archive Bluesky posts, Last.fm scrobbles and tweets into per-year snapshots",
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file with credentials")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_source(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("output_dir", help="Directory holding the <year>.json snapshots")
        sub.add_argument(
            "-f",
            "--full-sync",
            action="store_true",
            help="Ignore existing snapshots and walk the entire history",
        )
        return sub

    add_source("bluesky", "Sync posts from a Bluesky account")

    lastfm = add_source("lastfm", "Sync scrobbles from a Last.fm account")
    lastfm.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not read or write the page cache during a full sync",
    )

    twitter = add_source("twitter", "Sync tweets from the timeline API or an archive export")
    twitter.add_argument(
        "--from-archive",
        action="store_true",
        help="Import from Twitter archive files instead of the API",
    )
    twitter.add_argument(
        "--archive-file",
        action="append",
        default=[],
        help="Archive tweets.js file (repeatable; overrides TWITTER_ARCHIVE_FILES)",
    )
    twitter.add_argument(
        "--include-retweets",
        action="store_true",
        help="Keep retweets when importing",
    )
    return parser


def _source_type(args: argparse.Namespace) -> str:
    if args.command == "twitter" and args.from_archive:
        return "twitter-archive"
    return args.command


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load config, run one sync. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    source_type = _source_type(args)

    try:
        config = load_config(source_type, env_path=args.env_file)
    except ValueError as exc:
        _setup_logging("INFO", "text")
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    if args.command == "twitter":
        twitter = config.twitter or TwitterConfig()
        if args.archive_file:
            twitter = dataclasses.replace(twitter, archive_files=tuple(args.archive_file))
        if args.include_retweets:
            twitter = dataclasses.replace(twitter, include_retweets=True)
        config = dataclasses.replace(config, twitter=twitter)

    _setup_logging(config.log_level, config.log_format)

    try:
        result = run_sync(
            source_type,
            config,
            args.output_dir,
            full_sync=args.full_sync,
            use_cache=not getattr(args, "no_cache", False),
        )
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR
    except DecodeError as exc:
        logger.error("Loading existing snapshot failed: %s", exc)
        return EXIT_FAILURE
    except FetchError as exc:
        logger.error("Fetching from %s failed, no snapshots written: %s", source_type, exc)
        return EXIT_FAILURE
    except PersistError as exc:
        logger.error("Writing snapshots failed: %s", exc)
        return EXIT_FAILURE

    logger.info(
        "Done: %d new record(s) across %d page(s)%s",
        result.inserted,
        result.pages,
        " (stopped at previously synced data)" if result.stopped_at_boundary else "",
    )
    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
