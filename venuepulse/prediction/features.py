"""Calendar / time features for the traffic scorer.

All features are computed on the venue's local clock. The school calendar is
a coarse two-hemisphere approximation, not a real per-country calendar.
"""
import logging
from datetime import datetime
from typing import Optional

import pytz

from venuepulse.models.geo import GeoCity
from venuepulse.models.prediction import PredictionFeatures
from venuepulse.models.venue import VenueType

logger = logging.getLogger(__name__)

SOUTHERN_HEMISPHERE_COUNTRIES = frozenset({"AU", "NZ", "AR", "CL", "ZA", "BR"})

# Southern hemisphere: school runs February through November
SOUTHERN_TERM_MONTHS = frozenset(range(2, 12))
# Northern hemisphere: September through May, plus the first half of June
NORTHERN_TERM_MONTHS = frozenset({9, 10, 11, 12, 1, 2, 3, 4, 5})
NORTHERN_JUNE_LAST_SCHOOL_DAY = 15


def to_venue_local(now: datetime, timezone_name: Optional[str]) -> datetime:
    """Convert a timestamp to the venue's local time.

    Naive timestamps are taken as UTC. Unknown or missing timezone names
    fall back to UTC.
    """
    if now.tzinfo is None:
        now = pytz.utc.localize(now)

    if not timezone_name:
        return now.astimezone(pytz.utc)

    try:
        tz = pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {timezone_name!r}, using UTC")
        return now.astimezone(pytz.utc)

    return now.astimezone(tz)


def is_weekend(local_dt: datetime) -> bool:
    return local_dt.weekday() >= 5


def is_school_in_session(local_dt: datetime, country_code: Optional[str] = None) -> bool:
    """Rough school-term check by hemisphere.

    Unknown countries use the northern-hemisphere calendar.
    """
    month = local_dt.month
    if country_code and country_code.upper() in SOUTHERN_HEMISPHERE_COUNTRIES:
        return month in SOUTHERN_TERM_MONTHS

    if month in NORTHERN_TERM_MONTHS:
        return True
    return month == 6 and local_dt.day <= NORTHERN_JUNE_LAST_SCHOOL_DAY


def resolve_timezone(
    venue_timezone: Optional[str], nearest_city: Optional[GeoCity]
) -> Optional[str]:
    """Venue timezone first, then the nearest city's, else None (UTC)."""
    if venue_timezone:
        return venue_timezone
    if nearest_city is not None:
        return nearest_city.timezone
    return None


def resolve_country(
    venue_country: Optional[str], nearest_city: Optional[GeoCity]
) -> Optional[str]:
    """Nearest city's country first, then the venue's own."""
    if nearest_city is not None:
        return nearest_city.country_code
    return venue_country


def extract_features(
    now: datetime,
    venue_type: VenueType = VenueType.GENERAL,
    nearest_city: Optional[GeoCity] = None,
    timezone_name: Optional[str] = None,
    country_code: Optional[str] = None,
) -> PredictionFeatures:
    """Derive the scorer's features for one venue at one instant.

    Args:
        now: Current time (aware, or naive UTC)
        venue_type: Venue sport type
        nearest_city: Resolved population center, if any
        timezone_name: Venue's own IANA timezone, if known
        country_code: Venue's own country, if known

    Returns:
        PredictionFeatures on the venue's local clock
    """
    local_dt = to_venue_local(now, resolve_timezone(timezone_name, nearest_city))
    country = resolve_country(country_code, nearest_city)

    return PredictionFeatures(
        hour_of_day=local_dt.hour,
        is_weekend=is_weekend(local_dt),
        is_school_in_session=is_school_in_session(local_dt, country),
        nearest_city=nearest_city,
        venue_type=VenueType.parse(venue_type),
    )
