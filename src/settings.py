"""Static configuration for visawatch.

All user-editable settings (filters, schedule, cache, notifications) live in
a single JSON file for quick edits without touching Python. Secrets such as
the bot token stay in .env and are read by app.py.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# VISAWATCH_CONFIG points at an alternative file, e.g. one per deployment.
CONFIG_PATH = os.getenv("VISAWATCH_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Filter criteria; validated into a FilterConfig by validators.build_filter_config.
FILTERS = _CONFIG.get("filters", {})

# Schedule: a crontab expression evaluated in SCHEDULE_TIMEZONE.
_schedule = _CONFIG.get("schedule", {})
CHECK_INTERVAL = _schedule.get("cron", "*/5 * * * *")
SCHEDULE_TIMEZONE = _schedule.get("timezone", "Europe/Istanbul")
RUN_ON_START = bool(_schedule.get("run_on_start", True))

# Upstream API. retry_delay_base is in seconds and doubles per attempt.
_api = _CONFIG.get("api", {})
VISA_API_URL = _api.get("url", "https://api.visasbot.com/api/visa/list")
API_MAX_RETRIES = int(_api.get("max_retries", 3))
API_RETRY_DELAY_BASE = float(_api.get("retry_delay_base", 1.0))
API_TIMEOUT = float(_api.get("timeout", 15))

# Deduplication cache bounds (seconds).
CACHE = _CONFIG.get("cache", {})

# Notification method switches adapters without changing core logic.
# - "bot": Bot API over HTTPS (MarkdownV2)
# - "telethon": MTProto bot session (HTML), needs API_ID/API_HASH
NOTIFICATIONS = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = NOTIFICATIONS.get("notification_method", "bot")
NOTIFICATION_TIMEZONE = NOTIFICATIONS.get("timezone", "Europe/Istanbul")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
