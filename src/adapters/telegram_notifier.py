"""Telethon delivery adapter.

Sends HTML-formatted notifications through an MTProto bot session, for
setups that already run a Telethon client.
"""

from __future__ import annotations

from telethon import errors

from core.ports import DeliveryError, DeliveryThrottled


class TelethonDelivery:
    """Delivery adapter that sends messages with a connected TelegramClient."""

    parse_mode = "html"

    def __init__(self, client, chat_id: int) -> None:
        self._client = client
        self._chat_id = chat_id

    async def deliver(self, text: str) -> None:
        """Send the text to the configured channel."""

        try:
            await self._client.send_message(self._chat_id, text, parse_mode="html", link_preview=False)
        except errors.FloodWaitError as e:
            raise DeliveryThrottled(e.seconds, str(e)) from e
        except errors.RPCError as e:
            raise DeliveryError(f"Telegram error: {e}") from e
