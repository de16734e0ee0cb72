from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional

import httpx
from loguru import logger

from .config.settings import ConfigError, RelayConfig, config, load_config
from .providers.notifier import TelegramNotifier
from .providers.price_sources.kraken import KrakenQuoteSource
from .providers.price_store import PriceStore, StoreError
from .services.ingestion import IngestionLoop
from .services.replay import ReplayExporter
from .utils.logger import setup_logger

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_STORE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="price-relay",
        description="Poll Kraken prices into Redis and relay them to Telegram",
    )
    parser.add_argument(
        "--replay",
        action="store_true",
        help="Resend all stored history to Telegram and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to config YAML (default: {config.config_path})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single polling tick and exit",
    )
    return parser


def _warn_ignored_intervals(relay_config: RelayConfig) -> None:
    tick = relay_config.tick_seconds
    for pair_config in relay_config.pairs:
        seconds = pair_config.interval_seconds
        if seconds is None:
            logger.warning(
                "{} has an unrecognised interval {!r}; all pairs are polled every {}s",
                pair_config.pair,
                pair_config.interval,
                tick,
            )
        elif seconds != tick:
            logger.warning(
                "{} asks for a {} interval; all pairs are polled every {}s",
                pair_config.pair,
                pair_config.interval,
                tick,
            )


async def run_relay(
    relay_config: RelayConfig,
    *,
    replay: bool = False,
    once: bool = False,
    store: Optional[PriceStore] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    store = store or PriceStore.from_url(relay_config.redis.url, relay_config.redis.database)
    owns_client = client is None
    client = client or httpx.AsyncClient(
        timeout=httpx.Timeout(relay_config.kraken.timeout, connect=5.0)
    )
    pairs = [pair_config.pair for pair_config in relay_config.pairs]
    try:
        await store.ping()
        notifier = TelegramNotifier(
            client,
            bot_token=relay_config.telegram.bot_token,
            chat_id=relay_config.telegram.chat_id,
        )

        if replay:
            exporter = ReplayExporter(
                store,
                notifier,
                pairs,
                chunk_size=relay_config.replay.chunk_size,
                delay_seconds=relay_config.replay.delay_ms / 1000,
            )
            await exporter.run()
            return

        _warn_ignored_intervals(relay_config)
        source = KrakenQuoteSource(client, base_url=relay_config.kraken.base_url)
        loop = IngestionLoop(
            source,
            store,
            notifier,
            pairs,
            tick_seconds=relay_config.tick_seconds,
        )
        await loop.run(max_ticks=1 if once else None)
    finally:
        try:
            if owns_client:
                await client.aclose()
        finally:
            await store.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(level=config.log_level, log_dir=config.log_dir)

    try:
        relay_config = load_config(args.config)
    except ConfigError as exc:
        logger.error("{}", exc)
        return EXIT_CONFIG_ERROR

    mode = "replay" if args.replay else "ingestion"
    logger.info("Starting price relay in {} mode", mode)
    try:
        asyncio.run(run_relay(relay_config, replay=args.replay, once=args.once))
    except StoreError as exc:
        logger.error("Store failure, stopping: {}", exc)
        return EXIT_STORE_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return EXIT_OK
