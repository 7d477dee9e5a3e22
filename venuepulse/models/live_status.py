"""Live signal and merged live status models."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from venuepulse.models.prediction import ActivityLevel
from venuepulse.models.venue import Venue


class DataFreshness(str, Enum):
    LIVE = "live"
    STALE = "stale"
    NO_DATA = "no_data"


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STEADY = "steady"


class QuickReport(BaseModel):
    """Crowd report submitted by a user at (or about) a venue."""

    report_id: str
    venue_id: str
    user_id: str
    crowd_level: ActivityLevel
    conditions: list[str] = Field(default_factory=list)  # condition codes, e.g. "lights_on"
    note: Optional[str] = None
    created_at: datetime
    verified: bool = False  # True when submitted from a check-in location


class CheckIn(BaseModel):
    """A user checking in at a venue."""

    venue_id: str
    user_id: str
    created_at: datetime


class LiveSignals(BaseModel):
    """Live signals for one venue, already fetched from the signal store."""

    active_check_ins: int = Field(default=0, ge=0)
    last_check_in_at: Optional[datetime] = None
    reports: list[QuickReport] = Field(default_factory=list)  # newest first

    @property
    def last_signal_at(self) -> Optional[datetime]:
        """Timestamp of the most recent check-in or report, if any."""
        candidates = [self.last_check_in_at] + [r.created_at for r in self.reports[:1]]
        # naive times are UTC
        candidates = [
            c if c.tzinfo is not None else c.replace(tzinfo=timezone.utc)
            for c in candidates
            if c is not None
        ]
        return max(candidates) if candidates else None


class Condition(BaseModel):
    """Venue condition shown next to the crowd badge."""

    type: str
    label: str
    icon: str
    positive: bool


class LiveStatus(BaseModel):
    """What the user should see right now. Computed on read, never persisted."""

    venue_id: str
    crowd_level: Optional[ActivityLevel] = None
    crowd_icon: str
    crowd_color: str
    crowd_label: str

    data_freshness: DataFreshness
    minutes_since_update: Optional[int] = None
    last_reported_at: Optional[datetime] = None

    confidence: int = Field(ge=0, le=100)
    confidence_label: str

    active_check_ins: int = 0
    report_count: int = 0

    predicted_wait: Optional[str] = None
    best_time_to_visit: Optional[str] = None
    trend: Trend = Trend.STEADY
    conditions: list[Condition] = Field(default_factory=list)


class NearbyVenueStatus(BaseModel):
    """Venue paired with its current live status (for nearby listings)."""

    venue: Venue
    status: LiveStatus
    distance_km: Optional[float] = Field(default=None, ge=0)


class QuickReportRequest(BaseModel):
    """Body of a quick crowd report."""

    user_id: str = Field(min_length=1)
    crowd_level: ActivityLevel
    conditions: list[str] = Field(default_factory=list)
    note: Optional[str] = Field(default=None, max_length=500)
    verified: bool = False


class CheckInRequest(BaseModel):
    """Body of a check-in."""

    user_id: str = Field(min_length=1)
