"""Core domain package for visawatch.

Core contains filtering, deduplication, rate limiting and orchestration
logic without any HTTP, Telegram or scheduler code, keeping the business
logic portable.
"""
