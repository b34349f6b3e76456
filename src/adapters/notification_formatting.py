"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
import re
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from core.models import Appointment

STATUS_EMOJI = {
    "open": "✅",
    "waitlist_open": "⏳",
    "closed": "❌",
    "waitlist_closed": "🔒",
}
UNKNOWN_STATUS_EMOJI = "❓"
NO_INFORMATION = "No Information"

# Every character Telegram's MarkdownV2 reserves, including the backslash itself.
_MARKDOWN_V2_SPECIAL = re.compile(r"([\\_*\[\]()~`>#+\-=|{}.!])")


def escape_markdown_v2(value: str) -> str:
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", value)


def status_emoji(status: str) -> str:
    return STATUS_EMOJI.get(status, UNKNOWN_STATUS_EMOJI)


def format_checked_at(raw_value: str, timezone_name: str) -> str:
    """Render an ISO 8601 timestamp in the given timezone.

    Unparseable values are returned as-is rather than dropped.
    """

    try:
        # fromisoformat() only accepts the "Z" suffix from Python 3.11 on.
        parsed = datetime.fromisoformat(raw_value.replace("Z", "+00:00"))
    except ValueError:
        return raw_value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(ZoneInfo(timezone_name))
    return parsed.strftime("%d.%m.%Y %H:%M:%S")


def _format_markdown_v2(appointment: Appointment, timezone_name: str) -> str:
    """Create the MarkdownV2 body used by the Bot API adapter."""

    esc = escape_markdown_v2
    emoji = status_emoji(appointment.status)
    available = appointment.last_available_date
    available_text = esc(available) if available else NO_INFORMATION
    checked = esc(format_checked_at(appointment.last_checked_at, timezone_name))

    lines = [
        f"*{emoji} NEW APPOINTMENT STATUS\\! *",
        f"🏢 *Center:* {esc(appointment.center)}",
        f"🌍 *Country/Mission:* {esc(appointment.country_code.upper())} \\-\\> {esc(appointment.mission_code.upper())}",
        f"🏛️ *Category:* {esc(appointment.visa_category)}",
        f"📄 *Type:* {esc(appointment.visa_type or '')}",
        f"🚦 *Status:* {emoji} {esc(appointment.status)}",
        f"📅 *Last Available Date:* {available_text}",
        f"📊 *Tracking Count:* {appointment.tracking_count}",
        f"⏰ *Last Check:* {checked}",
    ]
    return "\n".join(lines)


def _format_html(appointment: Appointment, timezone_name: str) -> str:
    """Create the HTML body used by the Telethon adapter."""

    esc = html.escape
    emoji = status_emoji(appointment.status)
    available = appointment.last_available_date
    available_text = esc(available) if available else NO_INFORMATION
    checked = esc(format_checked_at(appointment.last_checked_at, timezone_name))

    parts = [
        f"<b>{emoji} NEW APPOINTMENT STATUS!</b>",
        f"🏢 <b>Center:</b> {esc(appointment.center)}",
        f"🌍 <b>Country/Mission:</b> {esc(appointment.country_code.upper())} -&gt; {esc(appointment.mission_code.upper())}",
        f"🏛️ <b>Category:</b> {esc(appointment.visa_category)}",
        f"📄 <b>Type:</b> {esc(appointment.visa_type or '')}",
        f"🚦 <b>Status:</b> {emoji} {esc(appointment.status)}",
        f"📅 <b>Last Available Date:</b> {available_text}",
        f"📊 <b>Tracking Count:</b> {appointment.tracking_count}",
        f"⏰ <b>Last Check:</b> {checked}",
    ]
    return "\n".join(parts)


def format_notification(appointment: Appointment, mode: str, timezone_name: str = "Europe/Istanbul") -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdownv2":
        return _format_markdown_v2(appointment, timezone_name)
    if mode == "html":
        return _format_html(appointment, timezone_name)
    raise ValueError(f"Unsupported notification format: {mode}")


def build_formatter(mode: str, timezone_name: Optional[str] = None) -> Callable[[Appointment], str]:
    """Bind format and timezone so the notification client only passes appointments."""

    if mode not in {"markdownv2", "html"}:
        raise ValueError(f"Unsupported notification format: {mode}")
    tz_name = timezone_name or "Europe/Istanbul"

    def _format(appointment: Appointment) -> str:
        return format_notification(appointment, mode, tz_name)

    return _format
