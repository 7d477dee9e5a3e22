"""Scheduled batch refresh of predicted venue statuses."""
import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

import redis

from venuepulse.dao import RedisVenueDAO
from venuepulse.models import PredictedStatus, Venue
from venuepulse.prediction import HeuristicTrafficScorer
from venuepulse.metrics import (
    PREDICTIONS_BY_LEVEL,
    PREDICTIONS_SKIPPED_TOTAL,
    PREDICTION_BATCH_FLUSHES_TOTAL,
    REFRESH_VENUES_SEEN,
    GEO_LOOKUP_RESULTS,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 400


@dataclass
class RefreshResult:
    """Outcome of one prediction refresh tick."""
    venues_seen: int = 0
    predictions_computed: int = 0
    predictions_written: int = 0
    predictions_skipped: int = 0
    batches_flushed: int = 0


def compute_predictions(
    venues: Iterable[Venue],
    scorer: HeuristicTrafficScorer,
    now: datetime,
) -> list[PredictedStatus]:
    """Score every venue that has coordinates, at one shared instant.

    Pure: no storage access, so the same venues and `now` always give the
    same list. Output is sorted by venue_id.
    """
    predictions = []
    for venue in venues:
        if not venue.has_coordinates:
            logger.debug(f"[PredictionRefresherService] Skipping {venue.venue_id}: no coordinates")
            continue
        predictions.append(
            scorer.predict(
                venue_id=venue.venue_id,
                lat=venue.venue_lat,
                lon=venue.venue_lng,
                venue_type=venue.sport_type,
                now=now,
                timezone_name=venue.venue_timezone,
                country_code=venue.country_code,
            )
        )
    predictions.sort(key=lambda p: p.venue_id)
    return predictions


def chunked(items: list, size: int) -> list[list]:
    """Split a list into consecutive chunks of at most `size` items."""
    if size <= 0:
        raise ValueError("batch size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


class PredictionRefresherService:
    """Recomputes and stores the predicted status of every known venue."""

    def __init__(
        self,
        venue_dao: RedisVenueDAO,
        scorer: HeuristicTrafficScorer,
        batch_size: int = DEFAULT_BATCH_SIZE,
        storage_timeout_seconds: float = 10.0,
    ):
        """Initialize refresher service.

        Args:
            venue_dao: Redis DAO for venue and prediction persistence
            scorer: Heuristic traffic scorer
            batch_size: Max predictions per storage write
            storage_timeout_seconds: Upper bound for one batch write
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.venue_dao = venue_dao
        self.scorer = scorer
        self.batch_size = batch_size
        self.storage_timeout_seconds = storage_timeout_seconds

    async def _flush(self, batch: list[PredictedStatus]) -> bool:
        """Write one batch. Returns False if the write failed or timed out."""
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.venue_dao.set_predicted_statuses, batch),
                timeout=self.storage_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"[PredictionRefresherService] Batch write of {len(batch)} predictions timed out "
                f"after {self.storage_timeout_seconds}s"
            )
            PREDICTION_BATCH_FLUSHES_TOTAL.labels(status="timeout").inc()
            PREDICTIONS_SKIPPED_TOTAL.labels(reason="flush_timeout").inc(len(batch))
            return False
        except redis.RedisError as e:
            logger.error(f"[PredictionRefresherService] Batch write of {len(batch)} predictions failed: {e}")
            PREDICTION_BATCH_FLUSHES_TOTAL.labels(status="error").inc()
            PREDICTIONS_SKIPPED_TOTAL.labels(reason="flush_failed").inc(len(batch))
            return False

        PREDICTION_BATCH_FLUSHES_TOTAL.labels(status="success").inc()
        return True

    async def refresh_predictions_for_all_venues(
        self, now: Optional[datetime] = None
    ) -> RefreshResult:
        """Recompute and store predictions for all venues.

        Every venue in one tick is scored against the same `now`. A failed
        batch write only skips that batch's venues; the tick goes on.

        Args:
            now: Tick time (defaults to the current UTC time)

        Returns:
            RefreshResult with counts for this tick
        """
        now = now or datetime.now(timezone.utc)
        result = RefreshResult()

        try:
            venues = await asyncio.to_thread(self.venue_dao.list_all_venues)
        except redis.RedisError as e:
            logger.error(f"[PredictionRefresherService] ListAllVenues failed: {e}")
            return result

        result.venues_seen = len(venues)
        REFRESH_VENUES_SEEN.set(len(venues))
        logger.info(
            f"[PredictionRefresherService] Found {len(venues)} venues; "
            f"computing predictions at {now.isoformat()}"
        )

        predictions = compute_predictions(venues, self.scorer, now)
        result.predictions_computed = len(predictions)

        no_coordinates = len(venues) - len(predictions)
        if no_coordinates:
            PREDICTIONS_SKIPPED_TOTAL.labels(reason="no_coordinates").inc(no_coordinates)
        result.predictions_skipped += no_coordinates

        matched = sum(1 for p in predictions if p.population_impact_note)
        GEO_LOOKUP_RESULTS.labels(result="matched").inc(matched)
        GEO_LOOKUP_RESULTS.labels(result="no_match").inc(len(predictions) - matched)

        levels = Counter(p.level.value for p in predictions)
        for level in ("low", "moderate", "busy"):
            PREDICTIONS_BY_LEVEL.labels(level=level).set(levels.get(level, 0))

        for batch in chunked(predictions, self.batch_size):
            if await self._flush(batch):
                result.predictions_written += len(batch)
                result.batches_flushed += 1
            else:
                result.predictions_skipped += len(batch)

        logger.info(
            f"[PredictionRefresherService] Refresh done: "
            f"{result.predictions_written}/{result.predictions_computed} written in "
            f"{result.batches_flushed} batches, {result.predictions_skipped} skipped"
        )
        return result
