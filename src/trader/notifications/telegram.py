"""Telegram Bot API notifier.

Notifications are strictly best-effort: a failed send is logged and reported
as False, it never raises into the trading path.
"""

import asyncio

import httpx

from trader.config import NotificationSettings
from trader.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class TelegramNotifier:
    """Sends Markdown messages to a single Telegram chat.

    A notifier without a bot token or chat id is disabled and every send
    returns False without touching the network.

    Args:
        settings: Bot token, chat id and request timeout.
        client: Optional shared httpx client (tests inject a mock transport).
    """

    def __init__(
        self,
        settings: NotificationSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self._settings.bot_token.get_secret_value() and self._settings.chat_id)

    async def send(self, text: str) -> bool:
        """Post ``text`` to the configured chat. Returns True on HTTP success."""
        if not self.enabled:
            return False

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout_seconds)

        url = TELEGRAM_API_URL.format(token=self._settings.bot_token.get_secret_value())
        try:
            response = await self._client.post(
                url,
                json={
                    "chat_id": self._settings.chat_id,
                    "text": text,
                    "parse_mode": "Markdown",
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # str(e) embeds the request URL, which carries the bot token
            logger.warning("notification_failed", status_code=e.response.status_code)
            return False
        except httpx.HTTPError as e:
            logger.warning("notification_failed", error=type(e).__name__)
            return False
        return True

    def notify(self, text: str) -> None:
        """Schedule ``send`` on the running loop without awaiting it."""
        if not self.enabled:
            return
        task = asyncio.get_running_loop().create_task(self.send(text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        """Wait for in-flight sends, then release the HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
