from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from loguru import logger


class ErrorKind(str, Enum):
    CONFIG = "config"
    STORE = "store"
    FETCH_TRANSPORT = "fetch_transport"
    FETCH_DECODE = "fetch_decode"
    FETCH_REMOTE = "fetch_remote"
    NOTIFY = "notify"
    MALFORMED_ENTRY = "malformed_entry"


@dataclass(frozen=True, slots=True)
class RelayEvent:
    kind: ErrorKind
    message: str
    pair: Optional[str] = None


class EventSink(Protocol):
    def report(self, event: RelayEvent) -> None: ...


class LoguruEventSink:
    """Writes recoverable failures to the application log."""

    _DEBUG_KINDS = {ErrorKind.MALFORMED_ENTRY}

    def report(self, event: RelayEvent) -> None:
        level = "DEBUG" if event.kind in self._DEBUG_KINDS else "ERROR"
        if event.pair:
            logger.log(level, "[{}] {}: {}", event.kind.value, event.pair, event.message)
        else:
            logger.log(level, "[{}] {}", event.kind.value, event.message)


@dataclass
class EventReporter:
    sink: EventSink

    def error(self, kind: ErrorKind, message: object, *, pair: Optional[str] = None) -> None:
        self.sink.report(RelayEvent(kind=kind, message=str(message), pair=pair))
