"""Post-visit validation feedback on past predictions."""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from venuepulse.dao import RedisVenueDAO
from venuepulse.models import (
    AccuracySummary,
    ActivityLevel,
    ValidationRecord,
    ValidationSubmission,
)
from venuepulse.metrics import VALIDATION_RECORDS_TOTAL, VALIDATION_INCOMPLETE_TOTAL

logger = logging.getLogger(__name__)

# Data-volume confidence bands: (min validations, band), highest first
ACCURACY_CONFIDENCE_BANDS = (
    (100, "very_high"),
    (50, "high"),
    (20, "medium"),
)


class IncompleteValidationError(Exception):
    """Raised when an "inaccurate" validation arrives without the actual level."""


@dataclass(frozen=True)
class PendingValidation:
    """First step of the "prediction was wrong" flow.

    Lives only in memory. If it is never completed, nothing is stored.
    """
    venue_id: str
    predicted_level: ActivityLevel
    user_id: str
    prediction_time: datetime
    visit_time: datetime


def accuracy_confidence(data_points: int) -> str:
    for minimum, band in ACCURACY_CONFIDENCE_BANDS:
        if data_points >= minimum:
            return band
    return "low"


def summarize_accuracy(venue_id: str, records: list[ValidationRecord]) -> AccuracySummary:
    total = len(records)
    correct = sum(1 for r in records if r.was_accurate)
    rate = round(correct / total * 100) if total else 0
    return AccuracySummary(
        venue_id=venue_id,
        total_predictions=total,
        correct_predictions=correct,
        accuracy_rate=rate,
        confidence=accuracy_confidence(total),
        data_points=total,
    )


class ValidationService:
    """Records user judgments of past predictions. Records are append-only."""

    def __init__(self, venue_dao: RedisVenueDAO):
        self.venue_dao = venue_dao

    def _write(
        self,
        venue_id: str,
        predicted_level: ActivityLevel,
        actual_level: ActivityLevel,
        user_id: str,
        prediction_time: datetime,
        visit_time: datetime,
    ) -> ValidationRecord:
        predicted_level = ActivityLevel(predicted_level)
        actual_level = ActivityLevel(actual_level)
        record = ValidationRecord(
            record_id=uuid.uuid4().hex,
            venue_id=venue_id,
            prediction_time=prediction_time,
            visit_time=visit_time,
            predicted_level=predicted_level,
            actual_level=actual_level,
            was_accurate=predicted_level == actual_level,
            user_id=user_id,
            submitted_at=datetime.now(timezone.utc),
        )
        self.venue_dao.append_validation(record)
        VALIDATION_RECORDS_TOTAL.labels(accurate=str(record.was_accurate).lower()).inc()
        logger.info(
            f"[ValidationService] Recorded validation for {venue_id}: "
            f"predicted={predicted_level.value} actual={actual_level.value}"
        )
        return record

    def record_accurate(
        self,
        venue_id: str,
        predicted_level: ActivityLevel,
        user_id: str,
        prediction_time: Optional[datetime] = None,
        visit_time: Optional[datetime] = None,
    ) -> ValidationRecord:
        """One-tap "the prediction was right": actual level = predicted level."""
        now = datetime.now(timezone.utc)
        return self._write(
            venue_id,
            predicted_level,
            predicted_level,
            user_id,
            prediction_time or now,
            visit_time or now,
        )

    def begin_inaccurate(
        self,
        venue_id: str,
        predicted_level: ActivityLevel,
        user_id: str,
        prediction_time: Optional[datetime] = None,
        visit_time: Optional[datetime] = None,
    ) -> PendingValidation:
        """Start the "prediction was wrong" flow. Writes nothing."""
        now = datetime.now(timezone.utc)
        return PendingValidation(
            venue_id=venue_id,
            predicted_level=ActivityLevel(predicted_level),
            user_id=user_id,
            prediction_time=prediction_time or now,
            visit_time=visit_time or now,
        )

    def complete(self, pending: PendingValidation, actual_level: ActivityLevel) -> ValidationRecord:
        """Finish the "prediction was wrong" flow with the level the user saw.

        was_accurate is still computed from the levels, so picking the
        predicted level here stores an accurate record.
        """
        return self._write(
            pending.venue_id,
            pending.predicted_level,
            actual_level,
            pending.user_id,
            pending.prediction_time,
            pending.visit_time,
        )

    def submit(self, venue_id: str, submission: ValidationSubmission) -> ValidationRecord:
        """Handle a validation request in one step.

        Raises:
            IncompleteValidationError: accurate=False without actual_level
        """
        if submission.accurate:
            return self.record_accurate(
                venue_id,
                submission.predicted_level,
                submission.user_id,
                submission.prediction_time,
                submission.visit_time,
            )

        if submission.actual_level is None:
            VALIDATION_INCOMPLETE_TOTAL.inc()
            logger.info(f"[ValidationService] Incomplete validation for {venue_id}; nothing stored")
            raise IncompleteValidationError(
                "actual_level is required when the prediction was inaccurate"
            )

        pending = self.begin_inaccurate(
            venue_id,
            submission.predicted_level,
            submission.user_id,
            submission.prediction_time,
            submission.visit_time,
        )
        return self.complete(pending, submission.actual_level)

    def accuracy_summary(self, venue_id: str) -> AccuracySummary:
        """Accuracy of past predictions at a venue, for offline analysis."""
        records = self.venue_dao.list_validations(venue_id)
        return summarize_accuracy(venue_id, records)
