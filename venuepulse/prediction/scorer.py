"""Additive rule-based traffic scorer.

score = time-of-day + weekend + density + school + sport bonus
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from venuepulse.models.geo import GeoCity
from venuepulse.models.prediction import (
    PredictedStatus,
    PredictionFeatures,
    ScoreBreakdown,
    TrafficLevel,
    to_activity_level,
)
from venuepulse.models.venue import VenueType
from venuepulse.prediction.features import extract_features, resolve_timezone, to_venue_local
from venuepulse.prediction.geo_density import GeoDensityResolver

logger = logging.getLogger(__name__)

# Time of day
EVENING_PEAK_HOURS = range(17, 21)
EVENING_PEAK_POINTS = 8
LUNCH_HOURS = range(12, 14)
LUNCH_POINTS = 5
MORNING_HOURS = range(6, 10)
MORNING_POINTS = 4
LATE_NIGHT_HOURS = frozenset({22, 23, 0, 1, 2, 3, 4, 5})
LATE_NIGHT_POINTS = 1
OTHER_HOURS_POINTS = 3

# Weekend
WEEKEND_DAYTIME_HOURS = range(10, 17)
WEEKEND_DAYTIME_POINTS = 4
WEEKEND_OTHER_POINTS = 1

# Population density (people / km^2), strict lower bounds
HIGH_DENSITY_THRESHOLD = 15000
HIGH_DENSITY_POINTS = 3
URBAN_DENSITY_THRESHOLD = 8000
URBAN_DENSITY_POINTS = 2

# After-school rush on school days
AFTER_SCHOOL_HOURS = range(14, 17)
AFTER_SCHOOL_POINTS = 3

# Weekend morning racket-sport peak
RACKET_WEEKEND_HOURS = range(9, 13)
RACKET_WEEKEND_POINTS = 3

BUSY_SCORE_THRESHOLD = 14
MODERATE_SCORE_THRESHOLD = 8

LEVEL_DISPLAY: dict[TrafficLevel, dict[str, str]] = {
    TrafficLevel.LOW: {"label": "Quiet", "color": "#22C55E", "wait": "No wait"},
    TrafficLevel.MODERATE: {"label": "Active", "color": "#EAB308", "wait": "5-15 min wait"},
    TrafficLevel.BUSY: {"label": "Busy", "color": "#EF4444", "wait": "20-40 min wait"},
}

BEST_TIME_LOOKAHEAD_HOURS = 6
BEST_TIME_NOW = "Now"
BEST_TIME_FALLBACK = "Tomorrow morning"


def time_of_day_points(hour: int) -> int:
    if hour in EVENING_PEAK_HOURS:
        return EVENING_PEAK_POINTS
    if hour in LUNCH_HOURS:
        return LUNCH_POINTS
    if hour in MORNING_HOURS:
        return MORNING_POINTS
    if hour in LATE_NIGHT_HOURS:
        return LATE_NIGHT_POINTS
    return OTHER_HOURS_POINTS


def weekend_points(is_weekend: bool, hour: int) -> int:
    if not is_weekend:
        return 0
    if hour in WEEKEND_DAYTIME_HOURS:
        return WEEKEND_DAYTIME_POINTS
    return WEEKEND_OTHER_POINTS


def density_points(city: Optional[GeoCity]) -> int:
    if city is None:
        return 0
    if city.population_density > HIGH_DENSITY_THRESHOLD:
        return HIGH_DENSITY_POINTS
    if city.population_density > URBAN_DENSITY_THRESHOLD:
        return URBAN_DENSITY_POINTS
    return 0


def school_points(features: PredictionFeatures) -> int:
    if (
        features.is_school_in_session
        and not features.is_weekend
        and features.hour_of_day in AFTER_SCHOOL_HOURS
    ):
        return AFTER_SCHOOL_POINTS
    return 0


def sport_points(features: PredictionFeatures) -> int:
    if (
        features.venue_type.is_racket_sport
        and features.is_weekend
        and features.hour_of_day in RACKET_WEEKEND_HOURS
    ):
        return RACKET_WEEKEND_POINTS
    return 0


def score_features(features: PredictionFeatures) -> ScoreBreakdown:
    """Sum every rule's contribution, in a fixed order."""
    contributions = {
        "time_of_day": time_of_day_points(features.hour_of_day),
        "weekend": weekend_points(features.is_weekend, features.hour_of_day),
        "population_density": density_points(features.nearest_city),
        "school_in_session": school_points(features),
        "sport_peak": sport_points(features),
    }
    total = sum(contributions.values())
    return ScoreBreakdown(contributions=contributions, total=total, level=score_to_level(total))


def score_to_level(score: int) -> TrafficLevel:
    """Step function from score to level. Monotonic, lower bounds inclusive."""
    if score >= BUSY_SCORE_THRESHOLD:
        return TrafficLevel.BUSY
    if score >= MODERATE_SCORE_THRESHOLD:
        return TrafficLevel.MODERATE
    return TrafficLevel.LOW


def population_impact_note(city: Optional[GeoCity]) -> Optional[str]:
    if city is None:
        return None
    if city.population_density > HIGH_DENSITY_THRESHOLD:
        return f"High density zone (near {city.display_name})"
    if city.population_density > URBAN_DENSITY_THRESHOLD:
        return f"Urban zone (near {city.display_name})"
    return f"Near {city.display_name}"


def format_hour(hour: int) -> str:
    """24h hour -> "7 PM" style label."""
    suffix = "AM" if hour < 12 else "PM"
    display = hour % 12 or 12
    return f"{display} {suffix}"


class HeuristicTrafficScorer:
    """Predicts a venue's traffic level from location, clock and sport type.

    Deterministic: the same inputs always yield the same prediction.
    """

    def __init__(self, resolver: GeoDensityResolver):
        self.resolver = resolver

    def features(
        self,
        lat: float,
        lon: float,
        venue_type: VenueType,
        now: datetime,
        timezone_name: Optional[str] = None,
        country_code: Optional[str] = None,
    ) -> PredictionFeatures:
        city = self.resolver.resolve(lat, lon)
        return extract_features(
            now,
            venue_type=venue_type,
            nearest_city=city,
            timezone_name=timezone_name,
            country_code=country_code,
        )

    def breakdown(
        self,
        lat: float,
        lon: float,
        venue_type: VenueType,
        now: datetime,
        timezone_name: Optional[str] = None,
        country_code: Optional[str] = None,
    ) -> ScoreBreakdown:
        """Explain a prediction term by term."""
        return score_features(
            self.features(lat, lon, venue_type, now, timezone_name, country_code)
        )

    def predict(
        self,
        venue_id: str,
        lat: float,
        lon: float,
        venue_type: VenueType,
        now: datetime,
        timezone_name: Optional[str] = None,
        country_code: Optional[str] = None,
    ) -> PredictedStatus:
        """Compute the predicted status of a venue at `now`.

        Args:
            venue_id: Venue identifier
            lat: Venue latitude
            lon: Venue longitude
            venue_type: Venue sport type
            now: Prediction instant
            timezone_name: Venue's own IANA timezone, if known
            country_code: Venue's own country, if known

        Returns:
            PredictedStatus stamped with computed_at = now
        """
        features = self.features(lat, lon, venue_type, now, timezone_name, country_code)
        result = score_features(features)
        display = LEVEL_DISPLAY[result.level]

        logger.debug(f"[HeuristicTrafficScorer] {venue_id}: {result.contributions} -> {result.total}")

        return PredictedStatus(
            venue_id=venue_id,
            level=result.level,
            activity_level=to_activity_level(result.level),
            score=result.total,
            label=display["label"],
            color=display["color"],
            estimated_wait_time=display["wait"],
            population_impact_note=population_impact_note(features.nearest_city),
            computed_at=now,
        )

    def best_time_to_visit(
        self,
        lat: float,
        lon: float,
        venue_type: VenueType,
        now: datetime,
        timezone_name: Optional[str] = None,
        country_code: Optional[str] = None,
    ) -> str:
        """First quiet hour among now and the next few hours.

        Returns "Now", a venue-local hour such as "7 PM", or "Tomorrow morning".
        """
        city = self.resolver.resolve(lat, lon)
        tz_name = resolve_timezone(timezone_name, city)

        for offset in range(BEST_TIME_LOOKAHEAD_HOURS + 1):
            at = now + timedelta(hours=offset)
            features = extract_features(
                at,
                venue_type=venue_type,
                nearest_city=city,
                timezone_name=timezone_name,
                country_code=country_code,
            )
            if score_features(features).level == TrafficLevel.LOW:
                if offset == 0:
                    return BEST_TIME_NOW
                return format_hour(to_venue_local(at, tz_name).hour)

        return BEST_TIME_FALLBACK
