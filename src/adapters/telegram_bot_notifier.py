"""Telegram Bot API delivery adapter.

Uses the Bot API sendMessage method so notifications can be posted to a
channel by a bot with only a token and a chat id.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from typing import Optional

from core.ports import DeliveryError, DeliveryThrottled

API_BASE = "https://api.telegram.org"


def _retry_after(body: str) -> Optional[float]:
    """Extract parameters.retry_after from a Bot API error body."""

    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    parameters = payload.get("parameters") or {}
    value = parameters.get("retry_after") if isinstance(parameters, dict) else None
    if isinstance(value, (int, float)) and value > 0:
        return float(value)
    return None


class TelegramBotDelivery:
    """Delivery adapter that posts MarkdownV2 messages via the Bot API."""

    parse_mode = "markdownv2"

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10, api_base: str = API_BASE) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout
        self._api_base = api_base.rstrip("/")

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"{self._api_base}/bot{self._bot_token}/sendMessage"

    def _build_request(self, text: str) -> urllib.request.Request:
        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "MarkdownV2",
            "link_preview_options": {"is_disabled": True},
        }
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        return request

    def _post(self, text: str) -> None:
        request = self._build_request(text)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout):
                pass
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            if e.code == 429:
                retry_after = _retry_after(body)
                if retry_after is not None:
                    raise DeliveryThrottled(retry_after, f"Bot API throttled: {body}") from e
            raise DeliveryError(f"Bot API error {e.code}: {body}") from e
        except urllib.error.URLError as e:
            raise DeliveryError(f"Bot API unreachable: {e.reason}") from e

    async def deliver(self, text: str) -> None:
        """Send the text to the configured chat without blocking the loop."""

        await asyncio.to_thread(self._post, text)
