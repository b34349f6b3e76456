"""Adapters connecting the core to the visa API and Telegram."""
