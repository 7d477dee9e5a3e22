"""Unit tests for live status merging and the live status service."""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from venuepulse.models import (
    ActivityLevel,
    DataFreshness,
    LiveSignals,
    PredictedStatus,
    QuickReport,
    TrafficLevel,
    Trend,
    Venue,
)
from venuepulse.services import LiveStatusService, merge_live_status
from venuepulse.services.live_status_service import (
    NO_DATA_CONFIDENCE,
    PREDICTION_ONLY_CONFIDENCE,
    calculate_confidence,
    calculate_crowd_level,
    LiveWindows,
)

NOW = datetime(2025, 1, 14, 23, 30, tzinfo=timezone.utc)


def make_prediction(level: TrafficLevel = TrafficLevel.MODERATE) -> PredictedStatus:
    activity = {
        TrafficLevel.LOW: ActivityLevel.QUIET,
        TrafficLevel.MODERATE: ActivityLevel.ACTIVE,
        TrafficLevel.BUSY: ActivityLevel.BUSY,
    }[level]
    return PredictedStatus(
        venue_id="v1",
        level=level,
        activity_level=activity,
        score=11,
        label="Active",
        color="#EAB308",
        estimated_wait_time="5-15 min wait",
        computed_at=NOW - timedelta(minutes=10),
    )


def make_report(minutes_ago: float, level: ActivityLevel = ActivityLevel.BUSY, conditions=None) -> QuickReport:
    return QuickReport(
        report_id=f"r{minutes_ago}",
        venue_id="v1",
        user_id="u1",
        crowd_level=level,
        conditions=conditions or [],
        created_at=NOW - timedelta(minutes=minutes_ago),
    )


def signals_with_reports(*minutes_ago: float) -> LiveSignals:
    return LiveSignals(reports=[make_report(m) for m in sorted(minutes_ago)])


class TestFreshness:
    """live / stale / no_data classification."""

    def test_no_data(self):
        status = merge_live_status("v1", None, LiveSignals(), NOW)

        assert status.data_freshness == DataFreshness.NO_DATA
        assert status.crowd_level is None
        assert status.crowd_label == "No data"
        assert status.confidence == NO_DATA_CONFIDENCE
        assert status.minutes_since_update is None

    def test_prediction_only_is_stale(self):
        status = merge_live_status("v1", make_prediction(), LiveSignals(), NOW)

        assert status.data_freshness == DataFreshness.STALE
        assert status.minutes_since_update is None
        assert status.confidence == PREDICTION_ONLY_CONFIDENCE
        assert status.confidence_label == "Low"
        assert status.crowd_level == ActivityLevel.QUIET  # 30 prediction points

    def test_recent_report_is_live(self):
        status = merge_live_status("v1", make_prediction(), signals_with_reports(5), NOW)

        assert status.data_freshness == DataFreshness.LIVE
        assert status.minutes_since_update is None

    def test_recent_check_in_is_live(self):
        signals = LiveSignals(active_check_ins=1, last_check_in_at=NOW - timedelta(minutes=5))
        status = merge_live_status("v1", None, signals, NOW)
        assert status.data_freshness == DataFreshness.LIVE

    def test_old_active_check_ins_are_stale(self):
        signals = LiveSignals(active_check_ins=3, last_check_in_at=NOW - timedelta(minutes=90))
        status = merge_live_status("v1", make_prediction(), signals, NOW)

        assert status.data_freshness == DataFreshness.STALE
        assert status.minutes_since_update == 90
        assert status.active_check_ins == 3
        assert status.confidence == PREDICTION_ONLY_CONFIDENCE
        assert status.confidence_label == "Low"

    def test_naive_report_time_mixed_with_aware_check_in(self):
        report = make_report(5)
        report.created_at = report.created_at.replace(tzinfo=None)
        signals = LiveSignals(
            active_check_ins=1,
            last_check_in_at=NOW - timedelta(minutes=30),
            reports=[report],
        )

        status = merge_live_status("v1", None, signals, NOW)

        assert status.data_freshness == DataFreshness.LIVE
        assert status.last_reported_at == NOW - timedelta(minutes=5)

    def test_live_window_boundary(self):
        at_edge = merge_live_status("v1", None, signals_with_reports(15), NOW)
        past_edge = merge_live_status("v1", None, signals_with_reports(16), NOW)

        assert at_edge.data_freshness == DataFreshness.LIVE
        assert past_edge.data_freshness == DataFreshness.STALE
        assert past_edge.minutes_since_update == 16

    def test_old_report_without_prediction_is_stale(self):
        status = merge_live_status("v1", None, signals_with_reports(300), NOW)

        assert status.data_freshness == DataFreshness.STALE
        assert status.minutes_since_update == 300
        assert status.crowd_level == ActivityLevel.BUSY


class TestConfidence:
    """Confidence formula and its monotonicity."""

    windows = LiveWindows()

    def test_fresh_signals(self):
        signals = LiveSignals(
            active_check_ins=2,
            last_check_in_at=NOW - timedelta(minutes=1),
            reports=[make_report(2), make_report(5)],
        )
        # 50 + 20 check-ins + 10 reports + 20 recency
        assert calculate_confidence(None, signals, NOW, self.windows) == 100

    def test_caps(self):
        signals = LiveSignals(
            active_check_ins=50,
            last_check_in_at=NOW,
            reports=[make_report(m) for m in range(10)],
        )
        assert calculate_confidence(None, signals, NOW, self.windows) == 100

    def test_recency_decays_to_zero(self):
        signals = signals_with_reports(60)
        # 50 + 5 for the one report, no recency bonus at the staleness edge
        assert calculate_confidence(None, signals, NOW, self.windows) == 55

    def test_outside_staleness_window_falls_back(self):
        signals = signals_with_reports(61)
        assert calculate_confidence(make_prediction(), signals, NOW, self.windows) == PREDICTION_ONLY_CONFIDENCE
        assert calculate_confidence(None, signals, NOW, self.windows) == NO_DATA_CONFIDENCE

    def test_non_increasing_with_age(self):
        values = [
            calculate_confidence(make_prediction(), signals_with_reports(m), NOW, self.windows)
            for m in range(0, 120, 5)
        ]
        assert values == sorted(values, reverse=True)

    def test_non_decreasing_with_more_signals(self):
        previous = calculate_confidence(make_prediction(), LiveSignals(), NOW, self.windows)
        reports = []
        for m in (40, 30, 20, 10, 1):
            reports.insert(0, make_report(m))
            current = calculate_confidence(make_prediction(), LiveSignals(reports=list(reports)), NOW, self.windows)
            assert current >= previous
            previous = current

    def test_labels(self):
        high = merge_live_status("v1", None, signals_with_reports(1, 2), NOW)
        medium = merge_live_status("v1", None, signals_with_reports(59), NOW)

        assert high.confidence_label == "High"
        assert medium.confidence_label == "Medium"


class TestCrowdLevel:
    """Which source decides the displayed level."""

    windows = LiveWindows()

    def test_recent_report_wins(self):
        signals = LiveSignals(reports=[make_report(10, ActivityLevel.DEAD)])
        level = calculate_crowd_level(make_prediction(TrafficLevel.BUSY), signals, NOW, self.windows.report_trust_window)
        assert level == ActivityLevel.DEAD

    @pytest.mark.parametrize(
        "check_ins,prediction,expected",
        [
            (0, TrafficLevel.LOW, ActivityLevel.DEAD),
            (0, TrafficLevel.BUSY, ActivityLevel.ACTIVE),
            (10, TrafficLevel.BUSY, ActivityLevel.PACKED),
            (5, TrafficLevel.MODERATE, ActivityLevel.BUSY),
            (1, TrafficLevel.LOW, ActivityLevel.QUIET),
            (2, None, ActivityLevel.QUIET),
        ],
    )
    def test_points(self, check_ins, prediction, expected):
        signals = LiveSignals(active_check_ins=check_ins, last_check_in_at=NOW if check_ins else None)
        pred = make_prediction(prediction) if prediction else None
        level = calculate_crowd_level(pred, signals, NOW, self.windows.report_trust_window)
        assert level == expected

    def test_old_report_used_when_nothing_else(self):
        signals = LiveSignals(reports=[make_report(120, ActivityLevel.PACKED)])
        assert calculate_crowd_level(None, signals, NOW, self.windows.report_trust_window) == ActivityLevel.PACKED

    def test_nothing_at_all(self):
        assert calculate_crowd_level(None, LiveSignals(), NOW, self.windows.report_trust_window) is None

    def test_display_metadata(self):
        status = merge_live_status("v1", None, LiveSignals(reports=[make_report(1, ActivityLevel.PACKED)]), NOW)

        assert status.crowd_label == "Packed"
        assert status.crowd_color == "#EF4444"
        assert status.predicted_wait == "20+ min"


class TestTrendAndConditions:
    """Report-derived extras."""

    def test_trend_increasing(self):
        reports = [make_report(m, ActivityLevel.PACKED) for m in (1, 2, 3)] + \
                  [make_report(m, ActivityLevel.QUIET) for m in (4, 5, 6)]
        status = merge_live_status("v1", None, LiveSignals(reports=reports), NOW)
        assert status.trend == Trend.INCREASING

    def test_trend_decreasing(self):
        reports = [make_report(m, ActivityLevel.DEAD) for m in (1, 2, 3)] + \
                  [make_report(m, ActivityLevel.BUSY) for m in (4, 5, 6)]
        status = merge_live_status("v1", None, LiveSignals(reports=reports), NOW)
        assert status.trend == Trend.DECREASING

    def test_trend_with_one_older_report(self):
        reports = [make_report(m, ActivityLevel.PACKED) for m in (1, 2)] + \
                  [make_report(m, ActivityLevel.DEAD) for m in (3, 4)]
        status = merge_live_status("v1", None, LiveSignals(reports=reports), NOW)
        assert status.trend == Trend.INCREASING

    def test_trend_steady_with_few_reports(self):
        status = merge_live_status("v1", None, signals_with_reports(1, 2, 3), NOW)
        assert status.trend == Trend.STEADY

    def test_conditions_need_repeat_mentions(self):
        reports = [
            make_report(1, conditions=["lights_on", "wet_courts"]),
            make_report(2, conditions=["lights_on"]),
            make_report(3, conditions=["nets_down"]),
        ]
        status = merge_live_status("v1", None, LiveSignals(reports=reports), NOW)
        assert [c.type for c in status.conditions] == ["lights_on"]

    def test_single_report_conditions_count(self):
        reports = [make_report(1, conditions=["reserved", "unknown_code"])]
        status = merge_live_status("v1", None, LiveSignals(reports=reports), NOW)

        assert [c.type for c in status.conditions] == ["reserved"]
        assert status.conditions[0].positive is False


class TestLiveStatusService:
    """Service wiring over a mocked DAO."""

    @pytest.fixture
    def mock_venue_dao(self):
        dao = Mock()
        dao.get_predicted_status.return_value = make_prediction()
        dao.get_live_signals.return_value = LiveSignals()
        dao.get_venue.return_value = Venue(venue_id="v1", venue_lat=40.7128, venue_lng=-74.0060)
        return dao

    def test_get_live_status(self, mock_venue_dao, scorer):
        service = LiveStatusService(mock_venue_dao, scorer=scorer)
        status = service.get_live_status("v1", NOW)

        assert status.venue_id == "v1"
        assert status.data_freshness == DataFreshness.STALE
        assert status.best_time_to_visit == "9 PM"
        mock_venue_dao.get_live_signals.assert_called_once_with(
            "v1", NOW, check_in_active_hours=2, report_lookback_hours=24
        )

    def test_best_time_skipped_without_coordinates(self, mock_venue_dao, scorer):
        mock_venue_dao.get_venue.return_value = Venue(venue_id="v1")
        service = LiveStatusService(mock_venue_dao, scorer=scorer)
        assert service.get_live_status("v1", NOW).best_time_to_visit is None

    def test_submit_quick_report_drops_unknown_conditions(self, mock_venue_dao):
        service = LiveStatusService(mock_venue_dao)
        report = service.submit_quick_report(
            "v1", "u1", "busy", conditions=["lights_on", "disco"], now=NOW
        )

        assert report.crowd_level == ActivityLevel.BUSY
        assert report.conditions == ["lights_on"]
        mock_venue_dao.add_report.assert_called_once_with(report)

    def test_record_check_in(self, mock_venue_dao):
        service = LiveStatusService(mock_venue_dao)
        check_in = service.record_check_in("v1", "u1", now=NOW)

        assert check_in.created_at == NOW
        mock_venue_dao.record_check_in.assert_called_once_with(check_in)

    def test_record_check_in_prunes_expired(self, mock_venue_dao):
        mock_venue_dao.prune_check_ins.return_value = 4
        service = LiveStatusService(mock_venue_dao, check_in_active_hours=2)

        service.record_check_in("v1", "u1", now=NOW)

        mock_venue_dao.prune_check_ins.assert_called_once_with("v1", NOW - timedelta(hours=2))
