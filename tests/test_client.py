from __future__ import annotations

import asyncio

import pytest

import client
from validators import ConfigError


def test_read_session_settings(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", "12345")
    monkeypatch.setenv("API_HASH", "abcdef")
    monkeypatch.delenv("SESSION_NAME", raising=False)

    session = client.read_session_settings()

    assert session.api_id == 12345
    assert session.api_hash == "abcdef"
    assert session.session_name == "visawatch"


def test_missing_credentials_fail_before_connecting(monkeypatch) -> None:
    monkeypatch.delenv("API_ID", raising=False)
    monkeypatch.setenv("API_HASH", "abcdef")

    def unexpected_client(*args, **kwargs):
        raise AssertionError("client must not be created without credentials")

    monkeypatch.setattr(client, "TelegramClient", unexpected_client)

    with pytest.raises(ConfigError, match="API_ID"):
        asyncio.run(client.build_bot_client("123:abc"))


def test_non_numeric_api_id_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", "not-a-number")
    monkeypatch.setenv("API_HASH", "abcdef")

    with pytest.raises(ConfigError, match="numeric"):
        client.read_session_settings()


def test_build_bot_client_starts_bot_session(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", "1")
    monkeypatch.setenv("API_HASH", "hash")
    monkeypatch.setenv("SESSION_NAME", "test-session")
    created = []

    class DummyTelegramClient:
        def __init__(self, session_name, api_id, api_hash) -> None:
            created.append((session_name, api_id, api_hash))
            self.bot_token = None

        async def start(self, bot_token=None):
            self.bot_token = bot_token
            return self

    monkeypatch.setattr(client, "TelegramClient", DummyTelegramClient)

    started = asyncio.run(client.build_bot_client("123:abc"))

    assert created == [("test-session", 1, "hash")]
    assert started.bot_token == "123:abc"
