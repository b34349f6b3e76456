"""Appointment filtering logic (core domain)."""

from __future__ import annotations

import logging

from core.city_extractor import extract_city
from core.config import FilterConfig
from core.models import ACTIONABLE_STATUSES, Appointment

LOGGER = logging.getLogger(__name__)


def _debug(config: FilterConfig, message: str, *args: object) -> None:
    if config.debug:
        LOGGER.debug(message, *args)


def has_valid_status(appointment: Appointment, config: FilterConfig) -> bool:
    valid = appointment.status in ACTIONABLE_STATUSES
    if not valid:
        _debug(config, "Skipping appointment %s due to status: %s", appointment.id, appointment.status)
    return valid


def matches_target_country(appointment: Appointment, config: FilterConfig) -> bool:
    target = config.target_country.lower()
    if target == "all":
        return True

    matches = appointment.country_code.lower() == target
    if not matches:
        _debug(
            config,
            "Skipping appointment %s: source country %s doesn't match target %s",
            appointment.id,
            appointment.country_code,
            config.target_country,
        )
    return matches


def matches_mission_countries(appointment: Appointment, config: FilterConfig) -> bool:
    mission = appointment.mission_code.lower()
    matches = any(code.lower() == mission for code in config.mission_countries)
    if not matches:
        _debug(
            config,
            "Skipping appointment %s: mission country %s not in target list [%s]",
            appointment.id,
            appointment.mission_code,
            ", ".join(config.mission_countries),
        )
    return matches


def matches_target_cities(appointment: Appointment, config: FilterConfig) -> bool:
    if not config.target_cities:
        return True

    city = extract_city(appointment.center).lower()
    matches = any(target.lower() in city for target in config.target_cities)
    if not matches:
        _debug(
            config,
            "Skipping appointment %s: city %s not in target list [%s]",
            appointment.id,
            city,
            ", ".join(config.target_cities),
        )
    return matches


def matches_visa_sub_categories(appointment: Appointment, config: FilterConfig) -> bool:
    if not config.target_sub_categories:
        return True

    visa_type = (appointment.visa_type or "").lower()
    matches = any(sub.lower() in visa_type for sub in config.target_sub_categories)
    if not matches:
        _debug(
            config,
            'Skipping appointment %s: visa type "%s" not in target list [%s]',
            appointment.id,
            appointment.visa_type,
            ", ".join(config.target_sub_categories),
        )
    return matches


# Evaluation order only affects which rejection gets logged.
_CHECKS = (
    has_valid_status,
    matches_target_country,
    matches_mission_countries,
    matches_target_cities,
    matches_visa_sub_categories,
)


def is_appointment_valid(appointment: Appointment, config: FilterConfig) -> bool:
    """Return True when the appointment passes every configured filter.

    Filtering logic:
    - Status must be actionable (open or waitlist_open).
    - Source country must match, unless the target is "all".
    - Mission country must be one of the configured missions.
    - City and visa sub-category checks only apply when configured, using
      case-insensitive substring matching.
    """

    return all(check(appointment, config) for check in _CHECKS)
