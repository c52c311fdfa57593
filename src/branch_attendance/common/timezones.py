"""Branch time-zone conversion.

Conversions never fail the caller: an unknown zone id leaves the wall-clock
value as it was and is logged once.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Branches configured from Windows hosts store these names.
WINDOWS_ZONE_ALIASES = {
    "UTC": "UTC",
    "GMT Standard Time": "Europe/London",
    "W. Europe Standard Time": "Europe/Berlin",
    "Central European Standard Time": "Europe/Warsaw",
    "Russian Standard Time": "Europe/Moscow",
    "Eastern Standard Time": "America/New_York",
    "Central Standard Time": "America/Chicago",
    "Mountain Standard Time": "America/Denver",
    "Pacific Standard Time": "America/Los_Angeles",
    "Arabian Standard Time": "Asia/Dubai",
    "Arab Standard Time": "Asia/Riyadh",
    "Pakistan Standard Time": "Asia/Karachi",
    "India Standard Time": "Asia/Kolkata",
    "Bangladesh Standard Time": "Asia/Dhaka",
    "SE Asia Standard Time": "Asia/Bangkok",
    "Singapore Standard Time": "Asia/Singapore",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "New Zealand Standard Time": "Pacific/Auckland",
    "South Africa Standard Time": "Africa/Johannesburg",
    "E. Africa Standard Time": "Africa/Nairobi",
    "Egypt Standard Time": "Africa/Cairo",
}


class TimeZoneConverter:
    def __init__(self, aliases: dict[str, str] | None = None):
        self._aliases = dict(WINDOWS_ZONE_ALIASES if aliases is None else aliases)
        self._cache: dict[str, ZoneInfo | None] = {}
        self._lock = threading.Lock()

    def resolve(self, tz_id: str | None) -> ZoneInfo | None:
        key = tz_id.strip() if isinstance(tz_id, str) else ""
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        zone: ZoneInfo | None = None
        if key:
            try:
                zone = ZoneInfo(self._aliases.get(key, key))
            except (ZoneInfoNotFoundError, ValueError, OSError):
                # directory names and over-long ids surface as OSError
                zone = None
        if zone is None:
            logger.warning("Unknown time zone %r, keeping wall-clock values unchanged", tz_id)

        with self._lock:
            self._cache[key] = zone
        return zone

    def to_local(self, utc_value: datetime, tz_id: str | None) -> datetime:
        """UTC -> naive branch wall-clock."""
        if utc_value.tzinfo is None:
            utc_value = utc_value.replace(tzinfo=timezone.utc)
        zone = self.resolve(tz_id)
        if zone is None:
            return utc_value.astimezone(timezone.utc).replace(tzinfo=None)
        return utc_value.astimezone(zone).replace(tzinfo=None)

    def to_utc(self, local_value: datetime, tz_id: str | None) -> datetime:
        """Naive branch wall-clock -> aware UTC. Aware input is only normalised."""
        if local_value.tzinfo is not None:
            return local_value.astimezone(timezone.utc)
        zone = self.resolve(tz_id)
        if zone is None:
            return local_value.replace(tzinfo=timezone.utc)
        return local_value.replace(tzinfo=zone).astimezone(timezone.utc)
