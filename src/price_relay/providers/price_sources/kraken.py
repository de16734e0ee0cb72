from datetime import datetime, timezone
from typing import Any, Callable, List

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from .base import Quote, QuoteDecodeError, QuoteRemoteError, QuoteSource, QuoteTransportError

PRICE_UNAVAILABLE = "N/A"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class KrakenTickerResponse(BaseModel):
    result: Any
    error: List[str]


def extract_last_close(result: Any) -> str:
    """Pull the last trade close price out of a Ticker ``result`` mapping.

    Kraken keys the mapping by its own pair name (``XBTUSD`` comes back as
    ``XXBTZUSD``), so the first entry is taken regardless of its key. Any
    missing or oddly shaped step falls back to ``PRICE_UNAVAILABLE``.
    """
    if not isinstance(result, dict) or not result:
        return PRICE_UNAVAILABLE
    ticker = next(iter(result.values()))
    if not isinstance(ticker, dict):
        return PRICE_UNAVAILABLE
    close = ticker.get("c")
    if not isinstance(close, list) or not close:
        return PRICE_UNAVAILABLE
    price = close[0]
    if not isinstance(price, str):
        return PRICE_UNAVAILABLE
    return price


class KrakenQuoteSource(QuoteSource):
    name = "kraken"

    _TICKER_PATH = "/0/public/Ticker"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str = "https://api.kraken.com",
        clock: Clock = utc_now,
    ) -> None:
        self._client = client
        self._endpoint = base_url.rstrip("/") + self._TICKER_PATH
        self._clock = clock

    async def fetch(self, pair: str) -> Quote:
        try:
            response = await self._client.get(self._endpoint, params={"pair": pair})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise QuoteTransportError(f"Kraken request failed for {pair}: {exc}") from exc

        try:
            payload = KrakenTickerResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise QuoteDecodeError(f"Kraken returned an unexpected body for {pair}: {exc}") from exc

        if payload.error:
            raise QuoteRemoteError(payload.error)

        price = extract_last_close(payload.result)
        if price == PRICE_UNAVAILABLE:
            logger.debug("Kraken result for {} had no close price: {}", pair, payload.result)
        return Quote(price=price, observed_at=self._clock())
