"""City extraction from visa application center names."""

from __future__ import annotations

import re

# Last group after a "-" or "," separator; city names may contain spaces.
_CITY_PATTERN = re.compile(r"(?:-|\s*,\s*)\s*([^-,]+)$")


def extract_city(center_name: str) -> str:
    """Return the city token embedded at the end of a center name.

    Examples:
    - "Netherlands Visa Application Centre - Antalya" -> "Antalya"
    - "Bulgaria Visa Application Center, Ankara" -> "Ankara"
    - "Netherlands Visa application center- Dubai" -> "Dubai"

    Names without a separator are returned unchanged.
    """

    match = _CITY_PATTERN.search(center_name)
    if not match:
        return center_name
    return match.group(1).strip()
