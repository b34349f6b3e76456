from __future__ import annotations

import asyncio
import io
import json
import urllib.error

import pytest

from adapters import telegram_bot_notifier
from adapters.telegram_bot_notifier import TelegramBotDelivery
from core.ports import DeliveryError, DeliveryThrottled


class _Response:
    def __enter__(self) -> "_Response":
        return self

    def __exit__(self, *exc) -> None:
        return None


def _http_error(code: int, body: dict) -> urllib.error.HTTPError:
    payload = io.BytesIO(json.dumps(body).encode("utf-8"))
    return urllib.error.HTTPError("https://api.telegram.org", code, "error", {}, payload)


def test_request_payload_disables_previews(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout):
        captured["url"] = request.full_url
        captured["body"] = json.loads(request.data.decode("utf-8"))
        return _Response()

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    delivery = TelegramBotDelivery(bot_token="123:abc", chat_id="-100200")

    asyncio.run(delivery.deliver("hello"))

    assert captured["url"] == "https://api.telegram.org/bot123:abc/sendMessage"
    assert captured["body"] == {
        "chat_id": "-100200",
        "text": "hello",
        "parse_mode": "MarkdownV2",
        "link_preview_options": {"is_disabled": True},
    }


def test_429_with_retry_after_raises_throttled(monkeypatch) -> None:
    def fake_urlopen(request, timeout):
        raise _http_error(429, {"ok": False, "error_code": 429, "parameters": {"retry_after": 12}})

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    delivery = TelegramBotDelivery(bot_token="t", chat_id="1")

    with pytest.raises(DeliveryThrottled) as info:
        asyncio.run(delivery.deliver("hello"))
    assert info.value.retry_after == 12


def test_other_http_errors_are_terminal(monkeypatch) -> None:
    def fake_urlopen(request, timeout):
        raise _http_error(400, {"ok": False, "description": "Bad Request: can't parse entities"})

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    delivery = TelegramBotDelivery(bot_token="t", chat_id="1")

    with pytest.raises(DeliveryError) as info:
        asyncio.run(delivery.deliver("hello"))
    assert not isinstance(info.value, DeliveryThrottled)
    assert "can't parse entities" in str(info.value)


def test_429_without_hint_is_terminal(monkeypatch) -> None:
    def fake_urlopen(request, timeout):
        raise _http_error(429, {"ok": False})

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    delivery = TelegramBotDelivery(bot_token="t", chat_id="1")

    with pytest.raises(DeliveryError) as info:
        asyncio.run(delivery.deliver("hello"))
    assert not isinstance(info.value, DeliveryThrottled)
