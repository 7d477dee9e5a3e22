"""Unit tests for the validation feedback recorder."""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from venuepulse.models import ActivityLevel, ValidationRecord, ValidationSubmission
from venuepulse.services import IncompleteValidationError, ValidationService
from venuepulse.services.validation_service import accuracy_confidence, summarize_accuracy

PREDICTION_TIME = datetime(2025, 1, 14, 18, 0, tzinfo=timezone.utc)
VISIT_TIME = datetime(2025, 1, 14, 19, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_venue_dao():
    """Create mock venue DAO."""
    return Mock()


@pytest.fixture
def validation_service(mock_venue_dao):
    return ValidationService(mock_venue_dao)


def stored_records(mock_venue_dao) -> list[ValidationRecord]:
    return [c.args[0] for c in mock_venue_dao.append_validation.call_args_list]


class TestValidationFlows:
    """The accurate and inaccurate submission paths."""

    def test_record_accurate(self, validation_service, mock_venue_dao):
        record = validation_service.record_accurate(
            "v1", ActivityLevel.ACTIVE, "u1", PREDICTION_TIME, VISIT_TIME
        )

        assert record.was_accurate is True
        assert record.actual_level == ActivityLevel.ACTIVE
        assert record.predicted_level == ActivityLevel.ACTIVE
        assert record.prediction_time == PREDICTION_TIME
        assert record.visit_time == VISIT_TIME
        assert stored_records(mock_venue_dao) == [record]

    def test_inaccurate_two_step(self, validation_service, mock_venue_dao):
        pending = validation_service.begin_inaccurate("v1", ActivityLevel.ACTIVE, "u1")
        mock_venue_dao.append_validation.assert_not_called()

        record = validation_service.complete(pending, ActivityLevel.PACKED)

        assert record.was_accurate is False
        assert record.predicted_level == ActivityLevel.ACTIVE
        assert record.actual_level == ActivityLevel.PACKED
        assert stored_records(mock_venue_dao) == [record]

    def test_abandoned_flow_writes_nothing(self, validation_service, mock_venue_dao):
        validation_service.begin_inaccurate("v1", ActivityLevel.BUSY, "u1")
        mock_venue_dao.append_validation.assert_not_called()

    def test_completing_with_predicted_level_is_accurate(self, validation_service):
        pending = validation_service.begin_inaccurate("v1", "quiet", "u1")
        record = validation_service.complete(pending, "quiet")
        assert record.was_accurate is True

    def test_record_ids_are_unique(self, validation_service):
        first = validation_service.record_accurate("v1", ActivityLevel.DEAD, "u1")
        second = validation_service.record_accurate("v1", ActivityLevel.DEAD, "u1")
        assert first.record_id != second.record_id


class TestSubmit:
    """Single-request submission used by the HTTP route."""

    def test_accurate_submission(self, validation_service, mock_venue_dao):
        record = validation_service.submit(
            "v1", ValidationSubmission(predicted_level="busy", accurate=True, user_id="u1")
        )
        assert record.was_accurate is True
        assert record.actual_level == ActivityLevel.BUSY

    def test_accurate_flag_ignores_client_actual_level(self, validation_service):
        record = validation_service.submit(
            "v1",
            ValidationSubmission(predicted_level="busy", accurate=True, actual_level="dead", user_id="u1"),
        )
        assert record.actual_level == ActivityLevel.BUSY
        assert record.was_accurate is True

    def test_inaccurate_with_actual_level(self, validation_service, mock_venue_dao):
        record = validation_service.submit(
            "v1",
            ValidationSubmission(
                predicted_level="quiet",
                accurate=False,
                actual_level="packed",
                user_id="u1",
                prediction_time=PREDICTION_TIME,
                visit_time=VISIT_TIME,
            ),
        )
        assert record.was_accurate is False
        assert record.visit_time == VISIT_TIME
        assert len(stored_records(mock_venue_dao)) == 1

    def test_inaccurate_claim_with_matching_level_is_accurate(self, validation_service):
        record = validation_service.submit(
            "v1",
            ValidationSubmission(predicted_level="quiet", accurate=False, actual_level="quiet", user_id="u1"),
        )
        assert record.was_accurate is True

    def test_incomplete_submission_raises_and_writes_nothing(self, validation_service, mock_venue_dao):
        with pytest.raises(IncompleteValidationError):
            validation_service.submit(
                "v1", ValidationSubmission(predicted_level="quiet", accurate=False, user_id="u1")
            )
        mock_venue_dao.append_validation.assert_not_called()


class TestAccuracySummary:
    """Read-only accuracy aggregation."""

    def _records(self, correct: int, wrong: int) -> list[ValidationRecord]:
        records = []
        for i in range(correct + wrong):
            actual = ActivityLevel.ACTIVE if i < correct else ActivityLevel.PACKED
            records.append(ValidationRecord(
                record_id=str(i),
                venue_id="v1",
                prediction_time=PREDICTION_TIME,
                visit_time=VISIT_TIME,
                predicted_level=ActivityLevel.ACTIVE,
                actual_level=actual,
                was_accurate=actual == ActivityLevel.ACTIVE,
                user_id="u1",
                submitted_at=VISIT_TIME,
            ))
        return records

    def test_summary(self, validation_service, mock_venue_dao):
        mock_venue_dao.list_validations.return_value = self._records(3, 1)

        summary = validation_service.accuracy_summary("v1")

        assert summary.total_predictions == 4
        assert summary.correct_predictions == 3
        assert summary.accuracy_rate == 75
        assert summary.confidence == "low"
        mock_venue_dao.list_validations.assert_called_once_with("v1")

    def test_empty(self):
        summary = summarize_accuracy("v1", [])
        assert summary.accuracy_rate == 0
        assert summary.data_points == 0

    @pytest.mark.parametrize(
        "points,band",
        [(0, "low"), (19, "low"), (20, "medium"), (49, "medium"), (50, "high"), (99, "high"), (100, "very_high")],
    )
    def test_confidence_bands(self, points, band):
        assert accuracy_confidence(points) == band
