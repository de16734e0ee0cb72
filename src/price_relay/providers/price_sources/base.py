from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@dataclass(frozen=True, slots=True)
class Quote:
    price: str
    observed_at: datetime

    @property
    def timestamp(self) -> str:
        return self.observed_at.strftime(TIMESTAMP_FORMAT)


class FetchError(Exception):
    """Base class for every failure a quote source can report."""


class QuoteTransportError(FetchError):
    """Network failure, timeout or a non-success HTTP status."""


class QuoteDecodeError(FetchError):
    """The endpoint answered with something that is not the expected JSON."""


class QuoteRemoteError(FetchError):
    def __init__(self, messages: List[str]) -> None:
        self.messages = list(messages)
        super().__init__(", ".join(self.messages))


class QuoteSource(ABC):
    name: str

    @abstractmethod
    async def fetch(self, pair: str) -> Quote:
        """Return the current quote for ``pair`` or raise a FetchError."""
