"""Telethon bot session for the "telethon" notification method.

The session logs in with the same bot token the Bot API method uses, so
only API_ID/API_HASH are extra. The caller owns the returned client and
must disconnect it on shutdown.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from telethon import TelegramClient

from validators import ConfigError, require_values

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSettings:
    api_id: int
    api_hash: str
    session_name: str


def read_session_settings() -> SessionSettings:
    """Read MTProto credentials from the environment.

    Called at startup so missing or malformed credentials fail before the
    scheduler starts rather than on the first send.
    """

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    require_values({"API_ID": api_id, "API_HASH": api_hash})
    try:
        numeric_id = int(api_id)
    except ValueError as e:
        raise ConfigError("API_ID must be numeric") from e
    return SessionSettings(
        api_id=numeric_id,
        api_hash=api_hash,
        session_name=os.getenv("SESSION_NAME", "visawatch"),
    )


async def build_bot_client(bot_token: str) -> TelegramClient:
    """Create and start a Telethon client logged in as the notification bot."""

    session = read_session_settings()
    client = TelegramClient(session.session_name, session.api_id, session.api_hash)
    LOGGER.info("Starting Telethon bot session %s", session.session_name)
    await client.start(bot_token=bot_token)
    return client
