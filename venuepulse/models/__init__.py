"""Data models package for venuepulse."""
from venuepulse.models.venue import (
    Venue,
    VenueType,
)
from venuepulse.models.geo import GeoCity
from venuepulse.models.prediction import (
    TrafficLevel,
    ActivityLevel,
    PredictionFeatures,
    ScoreBreakdown,
    PredictedStatus,
    to_activity_level,
    to_traffic_level,
)
from venuepulse.models.live_status import (
    DataFreshness,
    Trend,
    QuickReport,
    CheckIn,
    LiveSignals,
    Condition,
    LiveStatus,
    NearbyVenueStatus,
    QuickReportRequest,
    CheckInRequest,
)
from venuepulse.models.validation import (
    ValidationRecord,
    ValidationSubmission,
    AccuracySummary,
)

__all__ = [
    # Venue models
    "Venue",
    "VenueType",
    # Geo reference models
    "GeoCity",
    # Prediction models
    "TrafficLevel",
    "ActivityLevel",
    "PredictionFeatures",
    "ScoreBreakdown",
    "PredictedStatus",
    "to_activity_level",
    "to_traffic_level",
    # Live status models
    "DataFreshness",
    "Trend",
    "QuickReport",
    "CheckIn",
    "LiveSignals",
    "Condition",
    "LiveStatus",
    "NearbyVenueStatus",
    "QuickReportRequest",
    "CheckInRequest",
    # Validation models
    "ValidationRecord",
    "ValidationSubmission",
    "AccuracySummary",
]
