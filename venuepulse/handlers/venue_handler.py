"""Venue handler for HTTP requests."""
import logging
from datetime import datetime, timezone
from typing import Optional

from venuepulse.dao import RedisVenueDAO
from venuepulse.models import (
    AccuracySummary,
    CheckIn,
    CheckInRequest,
    LiveStatus,
    NearbyVenueStatus,
    PredictedStatus,
    QuickReport,
    QuickReportRequest,
    ScoreBreakdown,
    ValidationRecord,
    ValidationSubmission,
)
from venuepulse.prediction import HeuristicTrafficScorer
from venuepulse.services import LiveStatusService, ValidationService

logger = logging.getLogger(__name__)

# Venues without a crowd level sort after every known level
UNKNOWN_LEVEL_RANK = 99


class VenueHandler:
    """Handler for venue-related HTTP requests."""

    def __init__(
        self,
        venue_dao: RedisVenueDAO,
        scorer: HeuristicTrafficScorer,
        live_status_service: LiveStatusService,
        validation_service: ValidationService,
    ):
        """Initialize venue handler.

        Args:
            venue_dao: Redis DAO for venue data access
            scorer: Heuristic traffic scorer (for on-demand explanations)
            live_status_service: Live status merger
            validation_service: Validation feedback recorder
        """
        self.venue_dao = venue_dao
        self.scorer = scorer
        self.live_status_service = live_status_service
        self.validation_service = validation_service

    def get_prediction(self, venue_id: str) -> Optional[PredictedStatus]:
        """Stored predicted status of a venue, or None before the first refresh."""
        logger.debug(f"[VenueHandler] GetPrediction: venue_id={venue_id}")
        return self.venue_dao.get_predicted_status(venue_id)

    def explain_prediction(
        self, venue_id: str, now: Optional[datetime] = None
    ) -> Optional[ScoreBreakdown]:
        """Term-by-term score of a venue at `now`.

        Returns None if the venue is unknown or has no coordinates.
        """
        venue = self.venue_dao.get_venue(venue_id)
        if venue is None or not venue.has_coordinates:
            return None
        return self.scorer.breakdown(
            venue.venue_lat,
            venue.venue_lng,
            venue.sport_type,
            now or datetime.now(timezone.utc),
            timezone_name=venue.venue_timezone,
            country_code=venue.country_code,
        )

    def get_status(self, venue_id: str, now: Optional[datetime] = None) -> LiveStatus:
        return self.live_status_service.get_live_status(venue_id, now)

    def get_venues_nearby(
        self, lat: float, lon: float, radius: float, now: Optional[datetime] = None
    ) -> list[NearbyVenueStatus]:
        """Get venues near a location with their live status, quietest first.

        Ties are broken by distance. Venues with no crowd level come last.

        Args:
            lat: Latitude
            lon: Longitude
            radius: Radius in kilometers

        Returns:
            List of NearbyVenueStatus
        """
        logger.info(
            f"[VenueHandler] GetVenuesNearby: lat={lat:.6f}, lon={lon:.6f}, radius={radius:.2f}km"
        )
        now = now or datetime.now(timezone.utc)

        out = []
        for venue, distance in self.venue_dao.get_nearby_venues(lat, lon, radius):
            status = self.live_status_service.get_live_status(venue.venue_id, now)
            out.append(NearbyVenueStatus(venue=venue, status=status, distance_km=distance))

        def sort_key(item: NearbyVenueStatus) -> tuple[int, float]:
            level = item.status.crowd_level
            rank = level.rank if level is not None else UNKNOWN_LEVEL_RANK
            return rank, item.distance_km or 0.0

        out.sort(key=sort_key)
        logger.info(f"[VenueHandler] Returning {len(out)} venues")
        return out

    def submit_report(self, venue_id: str, body: QuickReportRequest) -> QuickReport:
        return self.live_status_service.submit_quick_report(
            venue_id,
            body.user_id,
            body.crowd_level,
            conditions=body.conditions,
            note=body.note,
            verified=body.verified,
        )

    def record_check_in(self, venue_id: str, body: CheckInRequest) -> CheckIn:
        return self.live_status_service.record_check_in(venue_id, body.user_id)

    def submit_validation(self, venue_id: str, submission: ValidationSubmission) -> ValidationRecord:
        """Record a validation. Raises IncompleteValidationError if unfinished."""
        return self.validation_service.submit(venue_id, submission)

    def get_accuracy(self, venue_id: str) -> AccuracySummary:
        return self.validation_service.accuracy_summary(venue_id)

    def ping(self) -> dict[str, str]:
        """Health check endpoint.

        Returns:
            {"status": "pong"}
        """
        logger.debug("[VenueHandler] Ping")
        return {"status": "pong"}
