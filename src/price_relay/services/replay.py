from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from loguru import logger

from ..providers.notifier import Notifier, NotifyError
from ..providers.price_store import PriceStore, parse_entry
from ..utils.event import ErrorKind, EventReporter, LoguruEventSink
from ..utils.formatting import format_replay_entry

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_CHUNK_SIZE = 100
DEFAULT_DELAY_SECONDS = 0.1


@dataclass(slots=True)
class ReplaySummary:
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class ReplayExporter:
    """Re-sends stored history, one message per entry, grouped by pair.

    Entries go out in stored order (most recent first) page by page. Store
    read failures propagate to the caller; nothing is persisted about
    progress, so an interrupted replay starts over next time.
    """

    def __init__(
        self,
        store: PriceStore,
        notifier: Notifier,
        pairs: Sequence[str],
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
        reporter: Optional[EventReporter] = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._store = store
        self._notifier = notifier
        self._pairs = list(pairs)
        self._chunk_size = chunk_size
        self._delay_seconds = delay_seconds
        self._sleep = sleep
        self._reporter = reporter or EventReporter(LoguruEventSink())

    async def replay_pair(self, pair: str, summary: ReplaySummary) -> None:
        offset = 0
        while True:
            page = await self._store.read_history_page(pair, offset, self._chunk_size)
            if not page:
                break
            for raw in page:
                entry = parse_entry(raw)
                if entry is None:
                    summary.skipped += 1
                    self._reporter.error(ErrorKind.MALFORMED_ENTRY, f"unreadable entry {raw!r}", pair=pair)
                    continue
                try:
                    await self._notifier.send(format_replay_entry(pair, entry.price, entry.timestamp))
                except NotifyError as exc:
                    summary.failed += 1
                    self._reporter.error(ErrorKind.NOTIFY, exc, pair=pair)
                else:
                    summary.sent += 1
                await self._sleep(self._delay_seconds)
            offset += self._chunk_size

    async def run(self) -> ReplaySummary:
        summary = ReplaySummary()
        for pair in self._pairs:
            before = summary.sent
            await self.replay_pair(pair, summary)
            logger.info("Replayed {} entr(ies) for {}", summary.sent - before, pair)
        logger.info(
            "Replay finished: {} sent, {} skipped, {} failed",
            summary.sent,
            summary.skipped,
            summary.failed,
        )
        return summary
