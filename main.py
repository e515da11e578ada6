#!/usr/bin/env python3
"""Stakewire: news briefings targeted at what each reader has at stake.

This CLI turns onboarding-quiz profiles into NewsAPI queries and, with an
API key, fetches standardized articles for each profile.

Commands:
    queries     Show preferences and planned queries for one profile
    batch       Plan shared queries for a batch of profiles
    fetch       Fetch briefings for one or more profiles
    status      Show configuration and layer capabilities

Examples:
    python main.py queries profile.json
    python main.py batch profiles.json --threshold 0.6
    python main.py fetch profiles.json --output briefings.json
    python main.py status

Profile files hold one quiz object or a JSON list of them.

Environment:
    NEWSAPI_API_KEY: Required for fetch
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import aiohttp

from config import Config
from observability.logging import setup_logging
from observability.tracing import setup_tracing


def _load_profiles(path: str) -> list[dict[str, Any]]:
    """Read a profile file: a single object or a list of objects."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(p, dict) for p in data):
        return data
    raise ValueError(f"{path}: expected a profile object or a list of profile objects")


def _emit(payload: Any, output: str | None = None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        logging.getLogger(__name__).info("Output written | path=%s", output)
    else:
        print(text)


def cmd_queries(args: argparse.Namespace, config: Config) -> int:
    """Plan queries for a single profile."""
    from pipeline import process_single_user

    profiles = _load_profiles(args.profile)
    if len(profiles) != 1:
        print(f"Error: {args.profile} holds {len(profiles)} profiles; use 'batch' instead", file=sys.stderr)
        return 1

    result = process_single_user(profiles[0])
    _emit(result, args.output)
    return 1 if "error" in result else 0


def cmd_batch(args: argparse.Namespace, config: Config) -> int:
    """Plan shared queries for a batch of profiles."""
    from pipeline import process_user_intelligence

    threshold = args.threshold if args.threshold is not None else config.similarity_threshold
    result = process_user_intelligence(_load_profiles(args.profiles), threshold=threshold)
    _emit(result, args.output)
    return 1 if "error" in result else 0


def cmd_fetch(args: argparse.Namespace, config: Config) -> int:
    """Fetch briefings from NewsAPI."""
    from intelligence.cache import QueryCache
    from pipeline import fetch_briefings
    from sources.newsapi import NewsAPIProvider

    logger = logging.getLogger(__name__)
    profiles = _load_profiles(args.profiles)
    if not config.newsapi_api_key:
        logger.warning("NEWSAPI_API_KEY is not set; briefings will be fallbacks")

    async def run() -> list[dict[str, Any]]:
        async with aiohttp.ClientSession() as session:
            provider = NewsAPIProvider(
                api_key=config.newsapi_api_key,
                base_url=config.newsapi_base_url,
                timeout=config.newsapi_timeout,
                session=session,
            )
            cache = QueryCache(default_ttl=config.cache_ttl)
            briefings = await fetch_briefings(profiles, provider, cache, config)
        return [b.model_dump(mode="json", by_alias=True, exclude={"articles": {"__all__": {"raw"}}}) for b in briefings]

    try:
        briefings = asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130

    _emit(briefings, args.output)
    fallbacks = sum(1 for b in briefings if b["isFallback"])
    logger.info("Fetch complete | briefings=%d fallbacks=%d", len(briefings), fallbacks)
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and layer capabilities."""
    from pipeline import layer_stats

    status = {
        "config": {
            "newsapi_configured": bool(config.newsapi_api_key),
            "newsapi_base_url": config.newsapi_base_url,
            "language": config.language,
            "max_workers": config.max_workers,
            "max_retries": config.max_retries,
            "request_delay": config.request_delay,
            "cache_ttl": config.cache_ttl,
            "similarity_threshold": config.similarity_threshold,
            "max_articles_per_user": config.max_articles_per_user,
            "enable_logfire": config.enable_logfire,
        },
        "layer": layer_stats(),
    }
    print(json.dumps(status, indent=2))
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Stakewire: profile-targeted news briefings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    queries_parser = subparsers.add_parser("queries", help="Plan queries for one profile")
    queries_parser.add_argument("profile", help="Path to a profile JSON file")
    queries_parser.add_argument("--output", help="Write JSON here instead of stdout")

    batch_parser = subparsers.add_parser("batch", help="Plan shared queries for many profiles")
    batch_parser.add_argument("profiles", help="Path to a JSON list of profiles")
    batch_parser.add_argument(
        "--threshold",
        type=float,
        help="Similarity needed to share a query (default: config SIMILARITY_THRESHOLD)",
    )
    batch_parser.add_argument("--output", help="Write JSON here instead of stdout")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch briefings from NewsAPI")
    fetch_parser.add_argument("profiles", help="Path to a profile or list of profiles")
    fetch_parser.add_argument("--output", help="Write JSON here instead of stdout")
    fetch_parser.add_argument(
        "--lang",
        help="Article language (default: config LANGUAGE)",
    )

    subparsers.add_parser("status", help="Show configuration and capabilities")

    args = parser.parse_args()

    config = Config.load()
    if getattr(args, "lang", None):
        config.language = args.lang.lower()

    setup_logging(config, verbose=args.verbose)

    error = config.validate()
    if error:
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    if config.enable_logfire:
        setup_tracing(enabled=True, service_name="stakewire", token=config.logfire_token)

    commands = {
        "queries": cmd_queries,
        "batch": cmd_batch,
        "fetch": cmd_fetch,
        "status": cmd_status,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except (OSError, ValueError) as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
