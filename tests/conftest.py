"""Shared fakes and fixtures for the price relay tests (no live network or Redis)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from price_relay.providers.notifier import NotifyError
from price_relay.providers.price_sources.base import FetchError, Quote
from price_relay.providers.price_store import PriceStore
from price_relay.utils.event import ErrorKind, EventReporter, RelayEvent

FIXED_NOW = datetime(2024, 3, 1, 12, 30, 45, tzinfo=timezone.utc)

KRAKEN_XBT_BODY = {"result": {"XXBTZUSD": {"c": ["42000.5", "0.001"]}}, "error": []}


def _redis_range(items: List[str], start: int, stop: int) -> List[str]:
    size = len(items)
    if start < 0:
        start = max(size + start, 0)
    if stop < 0:
        stop = size + stop
    if start >= size or start > stop:
        return []
    return items[start : stop + 1]


class FakeRedis:
    """In-memory stand-in for the handful of redis.asyncio calls the store uses."""

    def __init__(self, fail_on: Optional[Set[str]] = None) -> None:
        self.values: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.fail_on = set(fail_on or ())
        self.lrange_calls: List[tuple] = []
        self.closed = False

    def _maybe_fail(self, command: str) -> None:
        if command in self.fail_on:
            raise RedisConnectionError(f"{command} refused")

    async def ping(self) -> bool:
        self._maybe_fail("ping")
        return True

    async def aclose(self) -> None:
        self.closed = True

    async def set(self, key: str, value: str) -> bool:
        self._maybe_fail("set")
        self.values[key] = value
        return True

    async def get(self, key: str) -> Optional[str]:
        self._maybe_fail("get")
        return self.values.get(key)

    async def lpush(self, key: str, *values: str) -> int:
        self._maybe_fail("lpush")
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def ltrim(self, key: str, start: int, stop: int) -> bool:
        self._maybe_fail("ltrim")
        self.lists[key] = _redis_range(self.lists.get(key, []), start, stop)
        return True

    async def lrange(self, key: str, start: int, stop: int) -> List[str]:
        self._maybe_fail("lrange")
        self.lrange_calls.append((key, start, stop))
        return list(_redis_range(self.lists.get(key, []), start, stop))

    async def llen(self, key: str) -> int:
        self._maybe_fail("llen")
        return len(self.lists.get(key, []))


class RecordingNotifier:
    def __init__(self, fail_when: Optional[Callable[[str], bool]] = None) -> None:
        self.messages: List[str] = []
        self.attempts = 0
        self._fail_when = fail_when

    async def send(self, text: str) -> None:
        self.attempts += 1
        if self._fail_when is not None and self._fail_when(text):
            raise NotifyError("chat unavailable")
        self.messages.append(text)


class RecordingSink:
    def __init__(self) -> None:
        self.events: List[RelayEvent] = []

    def report(self, event: RelayEvent) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> List[ErrorKind]:
        return [event.kind for event in self.events]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class StubSource:
    """Quote source answering from a per-pair script of quotes or errors."""

    name = "stub"

    def __init__(self, answers: Dict[str, object]) -> None:
        self.answers = answers
        self.calls: List[str] = []

    async def fetch(self, pair: str) -> Quote:
        self.calls.append(pair)
        answer = self.answers[pair]
        if isinstance(answer, list):
            answer = answer.pop(0)
        if isinstance(answer, FetchError):
            raise answer
        return answer


def make_quote(price: str, minute: int = 0) -> Quote:
    return Quote(price=price, observed_at=FIXED_NOW.replace(minute=minute))


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis) -> PriceStore:
    return PriceStore(fake_redis)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def reporter(sink: RecordingSink) -> EventReporter:
    return EventReporter(sink)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()
