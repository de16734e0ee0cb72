from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Optional, Sequence, Type

from loguru import logger

from ..providers.notifier import Notifier, NotifyError
from ..providers.price_sources.base import (
    FetchError,
    Quote,
    QuoteDecodeError,
    QuoteRemoteError,
    QuoteSource,
    QuoteTransportError,
)
from ..providers.price_store import PriceStore, StoreError
from ..utils.event import ErrorKind, EventReporter, LoguruEventSink
from ..utils.formatting import format_live_update

Sleep = Callable[[float], Awaitable[None]]

_FETCH_ERROR_KINDS: Dict[Type[FetchError], ErrorKind] = {
    QuoteTransportError: ErrorKind.FETCH_TRANSPORT,
    QuoteDecodeError: ErrorKind.FETCH_DECODE,
    QuoteRemoteError: ErrorKind.FETCH_REMOTE,
}


def fetch_error_kind(exc: FetchError) -> ErrorKind:
    for error_type, kind in _FETCH_ERROR_KINDS.items():
        if isinstance(exc, error_type):
            return kind
    return ErrorKind.FETCH_TRANSPORT


class IngestionLoop:
    """Polls every pair once per tick, stores the quote and announces it.

    A tick walks the pairs in configuration order. Failures are reported and
    isolated to the pair they happened on; only process termination stops
    ``run`` when no tick limit is given.
    """

    def __init__(
        self,
        source: QuoteSource,
        store: PriceStore,
        notifier: Notifier,
        pairs: Sequence[str],
        *,
        tick_seconds: float = 3600,
        sleep: Sleep = asyncio.sleep,
        reporter: Optional[EventReporter] = None,
    ) -> None:
        self._source = source
        self._store = store
        self._notifier = notifier
        self._pairs = list(pairs)
        self._tick_seconds = tick_seconds
        self._sleep = sleep
        self._reporter = reporter or EventReporter(LoguruEventSink())

    async def poll_pair(self, pair: str) -> Optional[Quote]:
        try:
            quote = await self._source.fetch(pair)
        except FetchError as exc:
            self._reporter.error(fetch_error_kind(exc), exc, pair=pair)
            return None

        await self._persist(pair, quote)

        message = format_live_update(pair, quote.price, quote.timestamp)
        try:
            await self._notifier.send(message)
        except NotifyError as exc:
            self._reporter.error(ErrorKind.NOTIFY, exc, pair=pair)
        else:
            logger.info("{} @ {} announced", pair, quote.price)
        return quote

    async def _persist(self, pair: str, quote: Quote) -> None:
        try:
            await self._store.set_latest(pair, quote)
        except StoreError as exc:
            self._reporter.error(ErrorKind.STORE, exc, pair=pair)
        try:
            await self._store.push_history(pair, quote)
        except StoreError as exc:
            self._reporter.error(ErrorKind.STORE, exc, pair=pair)

    async def run_tick(self) -> int:
        """Process every pair once and return how many quotes were fetched."""
        fetched = 0
        for pair in self._pairs:
            if await self.poll_pair(pair) is not None:
                fetched += 1
        logger.debug("Tick finished: {}/{} pairs fetched", fetched, len(self._pairs))
        return fetched

    async def run(self, max_ticks: Optional[int] = None) -> int:
        """Run ticks separated by the tick interval.

        With ``max_ticks`` the loop returns after that many ticks without
        sleeping after the last one; otherwise it never returns.
        """
        ticks = 0
        logger.info(
            "Polling {} pair(s) every {}s: {}",
            len(self._pairs),
            self._tick_seconds,
            ", ".join(self._pairs),
        )
        while max_ticks is None or ticks < max_ticks:
            await self.run_tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            await self._sleep(self._tick_seconds)
        return ticks
