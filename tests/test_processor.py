from __future__ import annotations

import asyncio
from typing import Optional

from core.config import CacheConfig, FilterConfig, RateLimitConfig
from core.dedup import DedupCache
from core.models import Appointment
from core.notifier import NotificationClient
from core.ports import DeliveryError
from core.processor import AppointmentChecker

from fakes import FakeClock, FakeDelivery, FakeSleeper, make_appointment


class FakeSource:
    def __init__(self, appointments: list[Appointment]) -> None:
        self.appointments = appointments
        self.calls = 0

    async def fetch_appointments(self) -> list[Appointment]:
        self.calls += 1
        return list(self.appointments)


def _formatter(appointment: Appointment) -> str:
    if appointment.center == "boom":
        raise RuntimeError("bad record")
    return f"appointment {appointment.id}"


def _checker(
    appointments: list[Appointment],
    delivery: Optional[FakeDelivery] = None,
    filter_config: Optional[FilterConfig] = None,
) -> tuple[AppointmentChecker, DedupCache, FakeDelivery]:
    delivery = delivery or FakeDelivery()
    clock = FakeClock()
    cache = DedupCache(CacheConfig(max_size=100, cleanup_interval=3600, retention=3600), clock=clock)
    notifier = NotificationClient(
        delivery=delivery,
        formatter=_formatter,
        rate_limit=RateLimitConfig(messages_per_minute=15),
        clock=clock,
        sleep=FakeSleeper(clock),
    )
    checker = AppointmentChecker(
        source=FakeSource(appointments),
        filter_config=filter_config or FilterConfig(target_country="tur", mission_countries=("nld",)),
        cache=cache,
        notifier=notifier,
    )
    return checker, cache, delivery


def test_end_to_end_single_matching_appointment() -> None:
    appointment = make_appointment(id=42, status="open", country_code="tur", mission_code="nld")
    checker, cache, delivery = _checker([appointment])

    summary = asyncio.run(checker.check_appointments())

    assert delivery.attempts == 1
    assert summary.sent == 1
    assert cache.has(cache.create_key(appointment))

    second = asyncio.run(checker.check_appointments())

    assert delivery.attempts == 1
    assert second.sent == 0
    assert second.skipped_cached == 1


def test_filtered_appointments_are_not_sent_or_cached() -> None:
    rejected = make_appointment(id=2, status="closed")
    checker, cache, delivery = _checker([rejected])

    summary = asyncio.run(checker.check_appointments())

    assert delivery.attempts == 0
    assert summary.matched == 0
    assert len(cache) == 0


def test_failed_delivery_removes_cache_entry_for_retry() -> None:
    appointment = make_appointment(id=3)
    delivery = FakeDelivery(errors=[DeliveryError("chat not found")])
    checker, cache, delivery = _checker([appointment], delivery=delivery)

    summary = asyncio.run(checker.check_appointments())

    assert summary.failed == 1
    assert not cache.has(cache.create_key(appointment))

    retry = asyncio.run(checker.check_appointments())

    assert retry.sent == 1
    assert delivery.attempts == 2
    assert cache.has(cache.create_key(appointment))


def test_empty_source_ends_run_quietly() -> None:
    checker, cache, delivery = _checker([])

    summary = asyncio.run(checker.check_appointments())

    assert summary.fetched == 0
    assert delivery.attempts == 0


def test_one_broken_appointment_does_not_stop_the_run() -> None:
    broken = make_appointment(id=4, center="boom")
    healthy = make_appointment(id=5)
    checker, cache, delivery = _checker([broken, healthy])

    summary = asyncio.run(checker.check_appointments())

    assert summary.failed == 1
    assert summary.sent == 1
    assert delivery.sent == ["appointment 5"]
    assert not cache.has(cache.create_key(broken))


def test_cache_entry_exists_while_delivery_is_in_flight() -> None:
    appointment = make_appointment(id=6)
    seen_in_cache: list[bool] = []

    class ObservingDelivery(FakeDelivery):
        async def deliver(self, text: str) -> None:
            seen_in_cache.append(cache.has(cache.create_key(appointment)))
            await super().deliver(text)

    checker, cache, _ = _checker([appointment], delivery=ObservingDelivery())
    asyncio.run(checker.check_appointments())

    assert seen_in_cache == [True]


def test_overlapping_runs_send_once() -> None:
    appointment = make_appointment(id=7)
    checker, _, delivery = _checker([appointment])

    async def scenario() -> None:
        await asyncio.gather(checker.check_appointments(), checker.check_appointments())

    asyncio.run(scenario())
    assert delivery.attempts == 1


def test_start_and_close_manage_background_tasks() -> None:
    checker, cache, _ = _checker([])

    async def scenario() -> None:
        checker.start()
        assert cache._cleanup_task is not None
        await checker.close()
        assert cache._cleanup_task is None

    asyncio.run(scenario())


def test_source_errors_end_the_run_without_raising() -> None:
    class BrokenSource:
        async def fetch_appointments(self) -> list[Appointment]:
            raise ConnectionError("upstream down")

    checker, _, delivery = _checker([])
    checker._source = BrokenSource()

    summary = asyncio.run(checker.check_appointments())

    assert summary.fetched == 0
    assert delivery.attempts == 0
