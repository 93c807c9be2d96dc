"""
Zone and date parsing helpers shared by the query and booking paths.
"""

import pendulum
from pendulum import DateTime

from .exceptions import InvalidDayError, InvalidTimeRangeError, InvalidTimezoneError


def validate_timezone(name: str) -> str:
    """Return ``name`` if it is a known IANA zone id."""
    if not name:
        raise InvalidTimezoneError("Timezone must not be empty")
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise InvalidTimezoneError(f"Invalid IANA timezone: {name!r}") from exc
    return name


def parse_iso_date(value: str, zone: str) -> DateTime:
    """
    Parse a ``YYYY-MM-DD`` string into the start of that day in ``zone``.

    Raises:
        InvalidDayError: If the value is not a calendar date
    """
    try:
        return pendulum.from_format(str(value).strip(), "YYYY-MM-DD", tz=zone).start_of("day")
    except ValueError as exc:
        raise InvalidDayError(f"Invalid day {value!r}, expected YYYY-MM-DD") from exc


def parse_instant(value: str, zone: str) -> DateTime:
    """
    Parse an ISO-8601 timestamp and normalize it to UTC.

    Timestamps without an offset are interpreted in ``zone``.
    """
    try:
        parsed = pendulum.parse(str(value).strip(), tz=zone)
    except ValueError as exc:
        raise InvalidTimeRangeError(f"Could not parse datetime: {value!r}") from exc

    if not isinstance(parsed, DateTime):
        raise InvalidTimeRangeError(f"Expected a date-time, got {value!r}")

    return parsed.in_timezone("UTC")
