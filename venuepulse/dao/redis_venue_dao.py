"""Redis-based Data Access Object for venue, prediction and feedback data."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
import redis

from venuepulse.db.geo_redis_client import GeoRedisClient
from venuepulse.models import (
    CheckIn,
    LiveSignals,
    PredictedStatus,
    QuickReport,
    ValidationRecord,
    Venue,
)

logger = logging.getLogger(__name__)

VENUES_GEO_KEY_V1 = "venues_geo_v1"
VENUES_GEO_PLACE_MEMBER_FORMAT_V1 = "venues_geo_place_v1:{}"
PREDICTED_STATUS_KEY_FORMAT = "predicted_status_v1:{}"
CHECK_INS_KEY_FORMAT = "checkins_v1:{}"
REPORTS_KEY_FORMAT = "reports_v1:{}"
VALIDATIONS_KEY_FORMAT = "validations_v1:{}"

# Only the tail of a venue's report list is read back
REPORTS_READ_LIMIT = 200


def _epoch(dt: datetime) -> float:
    """Seconds since epoch; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class RedisVenueDAO:
    """Data Access Object for venue operations using Redis."""

    def __init__(self, client: GeoRedisClient):
        """Initialize RedisVenueDAO.

        Args:
            client: GeoRedisClient instance
        """
        self.client = client

    # ------------------------------------------------------------------
    # Venues
    # ------------------------------------------------------------------

    def upsert_venue(self, venue: Venue) -> None:
        """Store venue as a geolocation with JSON data.

        Venues without coordinates are stored as plain JSON, outside the
        geo index.

        Args:
            venue: Venue object to store
        """
        venue_key = VENUES_GEO_PLACE_MEMBER_FORMAT_V1.format(venue.venue_id)
        if not venue.has_coordinates:
            self.client.set(venue_key, venue.model_dump_json())
            return

        self.client.add_location_with_json(
            geo_key=VENUES_GEO_KEY_V1,
            member_key=venue_key,
            lat=venue.venue_lat,
            lon=venue.venue_lng,
            data=venue,
        )

    def get_venue(self, venue_id: str) -> Optional[Venue]:
        """Retrieve a venue by its ID.

        Args:
            venue_id: Venue identifier

        Returns:
            Venue object or None if not found
        """
        venue_key = VENUES_GEO_PLACE_MEMBER_FORMAT_V1.format(venue_id)
        try:
            json_str = self.client.get(venue_key)
            if json_str is None:
                return None
            return Venue.model_validate_json(json_str)
        except Exception as e:
            logger.error(f"Failed to get venue {venue_id}: {e}")
            return None

    def get_nearby_venues(self, lat: float, lon: float, radius: float) -> list[tuple[Venue, float]]:
        """Retrieve nearby venues within a given radius.

        Args:
            lat: Center latitude
            lon: Center longitude
            radius: Radius in kilometers

        Returns:
            List of (Venue, distance in km)
        """
        logger.info("Getting nearby venues")

        results = self.client.get_locations_within_radius(VENUES_GEO_KEY_V1, lat, lon, radius)

        venues = []
        for venue_json, distance in results:
            try:
                venues.append((Venue.model_validate_json(venue_json), distance))
            except ValueError as e:
                logger.error(f"Failed to unmarshal venue JSON: {e}")
                continue

        logger.info(f"Finished getting nearby venues: found {len(venues)}")
        return venues

    def list_all_venues(self) -> list[Venue]:
        """Return all stored venues.

        Raises:
            redis.RedisError: If the key listing itself fails

        Returns:
            List of Venue objects
        """
        pattern = VENUES_GEO_PLACE_MEMBER_FORMAT_V1.format("*")
        keys = self.client.keys(pattern)

        venues = []
        for key in keys:
            try:
                json_str = self.client.get(key)
                if json_str:
                    venues.append(Venue.model_validate_json(json_str))
            except (redis.RedisError, ValueError) as e:
                logger.error(f"Failed to parse venue from key {key}: {e}")
                continue

        return venues

    # ------------------------------------------------------------------
    # Predicted status
    # ------------------------------------------------------------------

    def set_predicted_statuses(self, statuses: Iterable[PredictedStatus]) -> int:
        """Store a batch of predicted statuses in one pipelined write.

        Errors are not caught here: the caller decides what a failed batch means.

        Args:
            statuses: PredictedStatus objects

        Returns:
            Number of statuses written
        """
        items = {
            PREDICTED_STATUS_KEY_FORMAT.format(s.venue_id): s.model_dump_json()
            for s in statuses
        }
        return self.client.set_many(items)

    def get_predicted_status(self, venue_id: str) -> Optional[PredictedStatus]:
        """Retrieve the predicted status of a venue.

        Args:
            venue_id: Venue identifier

        Returns:
            PredictedStatus or None if not found
        """
        key = PREDICTED_STATUS_KEY_FORMAT.format(venue_id)
        try:
            json_str = self.client.get(key)
            if json_str is None:
                return None
            return PredictedStatus.model_validate_json(json_str)
        except redis.RedisError as e:
            logger.error(f"Failed to get predicted status from Redis: {e}")
            return None

    # ------------------------------------------------------------------
    # Live signals
    # ------------------------------------------------------------------

    def record_check_in(self, check_in: CheckIn) -> None:
        """Record a check-in. A user has at most one check-in per venue.

        Args:
            check_in: CheckIn object
        """
        key = CHECK_INS_KEY_FORMAT.format(check_in.venue_id)
        self.client.zadd(key, check_in.user_id, _epoch(check_in.created_at))

    def count_active_check_ins(self, venue_id: str, since: datetime) -> int:
        key = CHECK_INS_KEY_FORMAT.format(venue_id)
        return self.client.zcount(key, _epoch(since), float("inf"))

    def get_last_check_in_at(self, venue_id: str) -> Optional[datetime]:
        key = CHECK_INS_KEY_FORMAT.format(venue_id)
        score = self.client.zmax_score(key)
        if score is None:
            return None
        return datetime.fromtimestamp(score, tz=timezone.utc)

    def prune_check_ins(self, venue_id: str, before: datetime) -> int:
        """Drop check-ins strictly older than `before`.

        The bound is exclusive so it matches count_active_check_ins.
        """
        key = CHECK_INS_KEY_FORMAT.format(venue_id)
        return self.client.zremrangebyscore(key, "-inf", f"({_epoch(before)}")

    def add_report(self, report: QuickReport) -> None:
        """Append a quick report to the venue's report log.

        Args:
            report: QuickReport object
        """
        key = REPORTS_KEY_FORMAT.format(report.venue_id)
        self.client.rpush(key, report.model_dump_json())

    def get_recent_reports(self, venue_id: str, since: datetime) -> list[QuickReport]:
        """Return reports created at or after `since`, newest first.

        Args:
            venue_id: Venue identifier
            since: Oldest report time to include

        Returns:
            List of QuickReport, newest first
        """
        key = REPORTS_KEY_FORMAT.format(venue_id)
        since = _as_utc(since)

        reports = []
        for raw in self.client.lrange(key, -REPORTS_READ_LIMIT, -1):
            try:
                report = QuickReport.model_validate_json(raw)
            except ValueError as e:
                logger.error(f"[RedisVenueDAO] Skipping malformed report for {venue_id}: {e}")
                continue
            if _as_utc(report.created_at) >= since:
                reports.append(report)

        reports.sort(key=lambda r: _as_utc(r.created_at), reverse=True)
        return reports

    def get_live_signals(
        self,
        venue_id: str,
        now: datetime,
        check_in_active_hours: float = 2,
        report_lookback_hours: float = 24,
    ) -> LiveSignals:
        """Collect check-ins and recent reports for a venue.

        Read errors degrade to empty signals.

        Args:
            venue_id: Venue identifier
            now: Reference time
            check_in_active_hours: How long a check-in counts as active
            report_lookback_hours: How far back reports are read

        Returns:
            LiveSignals for the venue
        """
        try:
            active = self.count_active_check_ins(
                venue_id, now - timedelta(hours=check_in_active_hours)
            )
            last_check_in_at = self.get_last_check_in_at(venue_id)
            reports = self.get_recent_reports(
                venue_id, now - timedelta(hours=report_lookback_hours)
            )
        except redis.RedisError as e:
            logger.error(f"[RedisVenueDAO] Failed to read live signals for {venue_id}: {e}")
            return LiveSignals()

        return LiveSignals(
            active_check_ins=active,
            last_check_in_at=last_check_in_at,
            reports=reports,
        )

    # ------------------------------------------------------------------
    # Validation records
    # ------------------------------------------------------------------

    def append_validation(self, record: ValidationRecord) -> None:
        """Append a validation record. Records are never updated or deleted.

        Args:
            record: ValidationRecord object
        """
        key = VALIDATIONS_KEY_FORMAT.format(record.venue_id)
        self.client.rpush(key, record.model_dump_json())

    def list_validations(self, venue_id: str) -> list[ValidationRecord]:
        """Return all validation records of a venue in submission order.

        Args:
            venue_id: Venue identifier

        Returns:
            List of ValidationRecord (empty on read errors)
        """
        key = VALIDATIONS_KEY_FORMAT.format(venue_id)
        try:
            raw_records = self.client.lrange(key, 0, -1)
        except redis.RedisError as e:
            logger.error(f"Failed to get validations from Redis: {e}")
            return []

        records = []
        for raw in raw_records:
            try:
                records.append(ValidationRecord.model_validate_json(raw))
            except ValueError as e:
                logger.error(f"[RedisVenueDAO] Skipping malformed validation for {venue_id}: {e}")
        return records
