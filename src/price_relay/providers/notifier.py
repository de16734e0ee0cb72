from typing import Protocol, Union

import httpx
from loguru import logger


class NotifyError(RuntimeError):
    """Raised when a message could not be delivered."""


class TelegramNotifier:
    """Sends plain-text messages to a single Telegram chat."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        bot_token: str,
        chat_id: Union[int, str],
        base_url: str = "https://api.telegram.org",
    ) -> None:
        self._client = client
        self._endpoint = f"{base_url.rstrip('/')}/bot{bot_token}/sendMessage"
        self._chat_id = chat_id

    async def send(self, text: str) -> None:
        try:
            response = await self._client.post(
                self._endpoint,
                json={"chat_id": self._chat_id, "text": text},
            )
        except httpx.HTTPError as exc:
            raise NotifyError(f"Telegram request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise NotifyError(f"Telegram returned a non-JSON body (HTTP {response.status_code})") from exc

        if not isinstance(payload, dict) or not payload.get("ok"):
            description = payload.get("description") if isinstance(payload, dict) else None
            raise NotifyError(
                f"Telegram rejected the message (HTTP {response.status_code}): {description or payload}"
            )

        logger.debug("Telegram message delivered to {}", self._chat_id)


class Notifier(Protocol):
    async def send(self, text: str) -> None: ...
