"""Application entry point for the visawatch appointment checker."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

import settings
from adapters.notification_formatting import build_formatter
from adapters.telegram_bot_notifier import TelegramBotDelivery
from adapters.telegram_notifier import TelethonDelivery
from adapters.visa_api import VisaApiSource
from client import build_bot_client, read_session_settings
from core.dedup import DedupCache
from core.notifier import NotificationClient
from core.processor import AppointmentChecker
from scheduler import CheckScheduler
from validators import (
    ConfigError,
    build_cache_config,
    build_filter_config,
    build_rate_limit_config,
    require_values,
    validate_chat_id,
    validate_cron,
    validate_timezone,
)

NAME = "VISAWATCH"
FONT = "tarty-1"
REDACTED = "***"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


# Always masked, on top of any extra variable names listed under logging.redact.
SECRET_ENV_VARS = ("TELEGRAM_BOT_TOKEN", "API_HASH")


class _SecretMaskingFormatter(logging.Formatter):
    """Replace secret values anywhere in a rendered record, tracebacks included."""

    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first so a token containing another secret is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, REDACTED)
        return message


def _secret_values(config: dict) -> list[str]:
    names = list(SECRET_ENV_VARS)
    redact_cfg = config.get("redact", {})
    if redact_cfg.get("enabled", False):
        names.extend(redact_cfg.get("patterns", []))
    return [os.environ[name] for name in names if os.getenv(name)]


def _log_level(config: dict, debug: bool) -> int:
    # The filters' debug switch wins, otherwise rejections would be dropped.
    if debug:
        return logging.DEBUG
    return getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)


def _file_handler(file_cfg: dict) -> logging.Handler:
    path = file_cfg.get("path", "logs/visawatch.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging(debug: bool = False) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level = _log_level(config, debug)
    formatter = _SecretMaskingFormatter(
        _secret_values(config),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)
    # APScheduler logs every job execution at INFO; Telethon is chatty at DEBUG.
    for noisy in ("apscheduler", "telethon"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


async def _build_delivery(chat_id: str):
    """Select the delivery adapter based on configuration.

    Returns the adapter plus an optional Telethon client that must be
    disconnected on shutdown.
    """

    bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "")
    if settings.NOTIFICATION_METHOD == "bot":
        return TelegramBotDelivery(bot_token=bot_token, chat_id=chat_id), None
    if settings.NOTIFICATION_METHOD == "telethon":
        client = await build_bot_client(bot_token)
        return TelethonDelivery(client, int(chat_id)), client
    raise ConfigError("notification_method must be 'bot' or 'telethon'")


async def _build_checker(chat_id: str):
    filter_config = build_filter_config(settings.FILTERS)
    cache = DedupCache(build_cache_config(settings.CACHE))
    delivery, client = await _build_delivery(chat_id)
    notifier = NotificationClient(
        delivery=delivery,
        formatter=build_formatter(delivery.parse_mode, settings.NOTIFICATION_TIMEZONE),
        rate_limit=build_rate_limit_config(settings.NOTIFICATIONS),
    )
    source = VisaApiSource(
        url=settings.VISA_API_URL,
        max_retries=settings.API_MAX_RETRIES,
        retry_delay_base=settings.API_RETRY_DELAY_BASE,
        timeout=settings.API_TIMEOUT,
    )
    checker = AppointmentChecker(source=source, filter_config=filter_config, cache=cache, notifier=notifier)
    return checker, client


def _load_secrets() -> str:
    """Validate required secrets and return the normalized chat id."""

    load_dotenv()
    require_values(
        {
            "TELEGRAM_BOT_TOKEN": os.getenv("TELEGRAM_BOT_TOKEN"),
            "TELEGRAM_CHAT_ID": os.getenv("TELEGRAM_CHAT_ID"),
        }
    )
    return validate_chat_id(os.getenv("TELEGRAM_CHAT_ID"))


def _log_targets(logger: logging.Logger) -> None:
    filter_config = build_filter_config(settings.FILTERS)
    logger.info("Check schedule: %s (%s)", settings.CHECK_INTERVAL, settings.SCHEDULE_TIMEZONE)
    logger.info("Target country: %s", filter_config.target_country)
    logger.info("Mission countries: %s", ", ".join(filter_config.mission_countries))
    if filter_config.target_cities:
        logger.info("Target cities: %s", ", ".join(filter_config.target_cities))
    if filter_config.target_sub_categories:
        logger.info("Target visa sub-categories: %s", ", ".join(filter_config.target_sub_categories))


async def _watch(chat_id: str) -> None:
    logger = logging.getLogger(__name__)
    checker, client = await _build_checker(chat_id)
    checker.start()

    scheduler = CheckScheduler(
        checker.check_appointments,
        cron=settings.CHECK_INTERVAL,
        timezone_name=settings.SCHEDULE_TIMEZONE,
        run_on_start=settings.RUN_ON_START,
    )
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass

    scheduler.start()
    _log_targets(logger)
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down")
        scheduler.stop()
        await checker.close()
        if client is not None:
            await client.disconnect()


async def _check_once(chat_id: str) -> None:
    checker, client = await _build_checker(chat_id)
    try:
        await checker.check_appointments()
    finally:
        await checker.close()
        if client is not None:
            await client.disconnect()


def _validate_settings() -> None:
    validate_cron(settings.CHECK_INTERVAL, settings.SCHEDULE_TIMEZONE)
    validate_timezone(settings.NOTIFICATION_TIMEZONE)
    if settings.NOTIFICATION_METHOD == "telethon":
        read_session_settings()
    elif settings.NOTIFICATION_METHOD != "bot":
        raise ConfigError("notification_method must be 'bot' or 'telethon'")
    build_filter_config(settings.FILTERS)
    build_cache_config(settings.CACHE)
    build_rate_limit_config(settings.NOTIFICATIONS)


def _show_config() -> None:
    """Print the effective configuration with secrets masked."""

    load_dotenv()
    filter_config = build_filter_config(settings.FILTERS)
    cache_config = build_cache_config(settings.CACHE)
    rate_limit = build_rate_limit_config(settings.NOTIFICATIONS)

    table = Table(title=f"visawatch ({settings.CONFIG_PATH})")
    table.add_column("Setting")
    table.add_column("Value")
    rows = [
        ("target_country", filter_config.target_country),
        ("mission_countries", ", ".join(filter_config.mission_countries)),
        ("cities", ", ".join(filter_config.target_cities) or "(any)"),
        ("sub_categories", ", ".join(filter_config.target_sub_categories) or "(any)"),
        ("debug", str(filter_config.debug)),
        ("cron", f"{settings.CHECK_INTERVAL} ({settings.SCHEDULE_TIMEZONE})"),
        ("api_url", settings.VISA_API_URL),
        ("cache", f"max_size={cache_config.max_size}, retention={cache_config.retention:.0f}s"),
        ("notification_method", settings.NOTIFICATION_METHOD),
        ("rate_limit", f"{rate_limit.messages_per_minute}/min"),
        ("TELEGRAM_BOT_TOKEN", REDACTED if os.getenv("TELEGRAM_BOT_TOKEN") else "(missing)"),
        ("TELEGRAM_CHAT_ID", os.getenv("TELEGRAM_CHAT_ID") or "(missing)"),
    ]
    for name, value in rows:
        table.add_row(name, value)
    Console().print(table)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="visawatch")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the scheduled watcher")
    subparsers.add_parser("check", help="Run a single check and exit")
    subparsers.add_parser("config", help="Show the effective configuration")

    args = parser.parse_args(argv)
    if args.command == "config":
        _show_config()
        return

    load_dotenv()
    _configure_logging(debug=build_filter_config(settings.FILTERS).debug)
    logger = logging.getLogger(__name__)

    try:
        chat_id = _load_secrets()
        _validate_settings()
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    if args.command == "check":
        asyncio.run(_check_once(chat_id))
        return

    _print_banner()
    logger.info("Starting visawatch")
    asyncio.run(_watch(chat_id))


if __name__ == "__main__":
    main()
