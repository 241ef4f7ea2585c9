"""CLI entrypoint for the prediction resolver."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from goalwatch.db import init_db
from goalwatch.fixtures.client import build_fixture_client
from goalwatch.resolution.retention import purge_expired_predictions
from goalwatch.resolution.scheduler import ResolutionScheduler, run_resolver_with_shutdown
from goalwatch.resolution.store import PredictionStore
from goalwatch.settings import load_settings_snapshot

logger = logging.getLogger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resolve active predictions against live fixture data.",
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run a single tick and print its summary as JSON.",
    )
    mode.add_argument(
        "--loop",
        action="store_true",
        help="Run ticks on the configured interval until interrupted.",
    )
    mode.add_argument(
        "--purge",
        action="store_true",
        help="Delete predictions older than the retention window and exit.",
    )
    return parser.parse_args()


async def _run_once() -> dict:
    settings = load_settings_snapshot()
    client = build_fixture_client(settings)
    if client is None:
        raise SystemExit("No fixtures API key. Set FOOTBALL_API_KEY or store one via /api/settings.")
    scheduler = ResolutionScheduler(
        PredictionStore(),
        client,
        concurrency=settings.resolver_concurrency,
        fetch_deadline_seconds=client.deadline_seconds,
    )
    summary = await scheduler.run_tick()
    return summary.to_dict()


async def _run_loop() -> None:
    # Runs until Ctrl-C; nothing sets the event from the CLI.
    await run_resolver_with_shutdown(asyncio.Event())


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    args = _parse_args()
    init_db()

    if args.purge:
        settings = load_settings_snapshot()
        deleted = purge_expired_predictions(PredictionStore(), settings.retention_days)
        logging.info("Done: deleted=%s retention_days=%s", deleted, settings.retention_days)
        return

    if args.once:
        summary = asyncio.run(_run_once())
        print(json.dumps(summary, indent=2, ensure_ascii=False))
        return

    try:
        asyncio.run(_run_loop())
    except KeyboardInterrupt:
        logger.info("Resolver interrupted.")


if __name__ == "__main__":
    main()
