"""Crowd level scales and heuristic prediction models."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from venuepulse.models.geo import GeoCity
from venuepulse.models.venue import VenueType


class TrafficLevel(str, Enum):
    """3-level scale produced by the heuristic scorer."""

    LOW = "low"
    MODERATE = "moderate"
    BUSY = "busy"


class ActivityLevel(str, Enum):
    """5-level scale used for live display, user reports and validation.

    This is the canonical crowd scale; scorer output is mapped onto it
    with TRAFFIC_TO_ACTIVITY.
    """

    DEAD = "dead"
    QUIET = "quiet"
    ACTIVE = "active"
    BUSY = "busy"
    PACKED = "packed"

    @property
    def rank(self) -> int:
        return ACTIVITY_RANK[self]


ACTIVITY_RANK: dict[ActivityLevel, int] = {
    ActivityLevel.DEAD: 0,
    ActivityLevel.QUIET: 1,
    ActivityLevel.ACTIVE: 2,
    ActivityLevel.BUSY: 3,
    ActivityLevel.PACKED: 4,
}

# Scorer labels are "Quiet" / "Active" / "Busy", so each traffic level maps
# onto the activity level with the same label.
TRAFFIC_TO_ACTIVITY: dict[TrafficLevel, ActivityLevel] = {
    TrafficLevel.LOW: ActivityLevel.QUIET,
    TrafficLevel.MODERATE: ActivityLevel.ACTIVE,
    TrafficLevel.BUSY: ActivityLevel.BUSY,
}

ACTIVITY_TO_TRAFFIC: dict[ActivityLevel, TrafficLevel] = {
    ActivityLevel.DEAD: TrafficLevel.LOW,
    ActivityLevel.QUIET: TrafficLevel.LOW,
    ActivityLevel.ACTIVE: TrafficLevel.MODERATE,
    ActivityLevel.BUSY: TrafficLevel.BUSY,
    ActivityLevel.PACKED: TrafficLevel.BUSY,
}


def to_activity_level(level: TrafficLevel) -> ActivityLevel:
    """Map a scorer level onto the canonical 5-level scale."""
    return TRAFFIC_TO_ACTIVITY[TrafficLevel(level)]


def to_traffic_level(level: ActivityLevel) -> TrafficLevel:
    """Collapse a 5-level activity level onto the scorer's 3-level scale."""
    return ACTIVITY_TO_TRAFFIC[ActivityLevel(level)]


class PredictionFeatures(BaseModel):
    """Features derived per scoring call. Never persisted."""

    hour_of_day: int = Field(ge=0, le=23)
    is_weekend: bool
    is_school_in_session: bool
    nearest_city: Optional[GeoCity] = None
    venue_type: VenueType = VenueType.GENERAL


class ScoreBreakdown(BaseModel):
    """Additive traffic score with its per-feature contributions."""

    contributions: dict[str, int] = Field(default_factory=dict)
    total: int = 0
    level: TrafficLevel = TrafficLevel.LOW


class PredictedStatus(BaseModel):
    """Current predicted status of a venue, overwritten every batch tick."""

    venue_id: str
    level: TrafficLevel
    activity_level: ActivityLevel
    score: int
    label: str
    color: str
    estimated_wait_time: Optional[str] = None
    population_impact_note: Optional[str] = None
    computed_at: datetime
