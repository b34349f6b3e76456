from __future__ import annotations

import asyncio
import urllib.error

from adapters.visa_api import VisaApiSource, appointment_from_payload, parse_appointments


def _record(**overrides) -> dict:
    record = {
        "id": 101,
        "tracking_count": 4,
        "country_code": "tur",
        "mission_code": "nld",
        "visa_category": "SHORT TERM VISA",
        "visa_type": "TOURISM VISA APPLICATION",
        "center": "Netherlands Visa Application Centre - Ankara",
        "status": "open",
        "last_checked_at": "2024-01-01T10:00:00Z",
        "last_available_date": "15/02/2024",
    }
    record.update(overrides)
    return record


class ScriptedSource(VisaApiSource):
    """VisaApiSource with canned responses instead of HTTP."""

    def __init__(self, responses: list, **kwargs) -> None:
        self.sleeps: list[float] = []
        super().__init__(sleep=self.sleeps.append, **kwargs)
        self._responses = list(responses)
        self.requests = 0

    def _get_json(self):
        self.requests += 1
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_appointment_from_payload_maps_fields() -> None:
    appointment = appointment_from_payload(_record(last_open_at=None, tracking_count=None))
    assert appointment.id == 101
    assert appointment.tracking_count == 0
    assert appointment.mission_code == "nld"
    assert appointment.last_available_date == "15/02/2024"
    assert appointment.last_open_at is None


def test_parse_appointments_skips_malformed_records() -> None:
    records = [_record(), {"id": 2}, "junk", _record(id="x"), _record(id=3, visa_type=None)]
    appointments = parse_appointments(records)
    assert [a.id for a in appointments] == [101, 3]
    assert appointments[1].visa_type == ""


def test_parse_appointments_rejects_non_list_body() -> None:
    assert parse_appointments({"error": "maintenance"}) == []


def test_fetch_retries_with_exponential_backoff() -> None:
    source = ScriptedSource(
        [urllib.error.URLError("timeout"), ValueError("bad json"), [_record()]],
        max_retries=3,
        retry_delay_base=0.5,
    )

    appointments = asyncio.run(source.fetch_appointments())

    assert [a.id for a in appointments] == [101]
    assert source.sleeps == [0.5, 1.0]


def test_fetch_returns_empty_list_after_exhausting_retries() -> None:
    source = ScriptedSource([OSError("down")] * 3, max_retries=2, retry_delay_base=1)

    assert asyncio.run(source.fetch_appointments()) == []
    assert source.requests == 3
    assert source.sleeps == [1, 2]
