from __future__ import annotations

from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, ValidationError
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from .price_sources.base import Quote

HISTORY_LIMIT = 24
HISTORY_PREFIX = "history:"


class StoreError(RuntimeError):
    """Raised when the key-value backend cannot complete a call."""


class HistoryEntry(BaseModel):
    price: str
    timestamp: str

    @classmethod
    def from_quote(cls, quote: Quote) -> "HistoryEntry":
        return cls(price=quote.price, timestamp=quote.timestamp)


def latest_key(pair: str) -> str:
    return pair


def history_key(pair: str) -> str:
    return f"{HISTORY_PREFIX}{pair}"


def parse_entry(raw: str) -> Optional[HistoryEntry]:
    try:
        return HistoryEntry.model_validate_json(raw)
    except ValidationError:
        return None


class PriceStore:
    """Latest price and a capped recency list per pair, kept in Redis.

    The two writes are independent: a crash between ``set_latest`` and
    ``push_history`` leaves them out of step until the next successful poll.
    """

    def __init__(self, redis: Redis, *, history_limit: int = HISTORY_LIMIT) -> None:
        self._redis = redis
        self._history_limit = history_limit

    @classmethod
    def from_url(cls, url: str, database: int = 0) -> "PriceStore":
        pool = ConnectionPool.from_url(url, decode_responses=True)
        # A database path in the URL must not win over the configured index.
        pool.connection_kwargs["db"] = database
        return cls(Redis.from_pool(pool))

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as exc:
            raise StoreError(f"Redis is unreachable: {exc}") from exc

    async def close(self) -> None:
        await self._redis.aclose()

    async def set_latest(self, pair: str, quote: Quote) -> None:
        payload = HistoryEntry.from_quote(quote).model_dump_json()
        try:
            await self._redis.set(latest_key(pair), payload)
        except RedisError as exc:
            raise StoreError(f"Failed to store latest price for {pair}: {exc}") from exc

    async def get_latest(self, pair: str) -> Optional[HistoryEntry]:
        try:
            raw = await self._redis.get(latest_key(pair))
        except RedisError as exc:
            raise StoreError(f"Failed to read latest price for {pair}: {exc}") from exc
        if raw is None:
            return None
        return parse_entry(raw)

    async def push_history(self, pair: str, quote: Quote) -> None:
        key = history_key(pair)
        payload = HistoryEntry.from_quote(quote).model_dump_json()
        try:
            await self._redis.lpush(key, payload)
        except RedisError as exc:
            raise StoreError(f"Failed to append history for {pair}: {exc}") from exc

        try:
            await self._redis.ltrim(key, 0, self._history_limit - 1)
        except RedisError as exc:
            # History keeps growing until a later trim succeeds.
            logger.warning("Failed to trim history for {}: {}", pair, exc)

    async def read_history_page(self, pair: str, offset: int, count: int) -> List[str]:
        if count <= 0:
            return []
        try:
            return await self._redis.lrange(history_key(pair), offset, offset + count - 1)
        except RedisError as exc:
            raise StoreError(f"Failed to read history for {pair}: {exc}") from exc

    async def history_length(self, pair: str) -> int:
        try:
            return await self._redis.llen(history_key(pair))
        except RedisError as exc:
            raise StoreError(f"Failed to read history length for {pair}: {exc}") from exc
