"""Live status: merges the stored prediction with live check-ins and reports."""
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from venuepulse.dao import RedisVenueDAO
from venuepulse.models import (
    ActivityLevel,
    CheckIn,
    Condition,
    DataFreshness,
    LiveSignals,
    LiveStatus,
    PredictedStatus,
    QuickReport,
    TrafficLevel,
    Trend,
)
from venuepulse.prediction import HeuristicTrafficScorer
from venuepulse.metrics import LIVE_STATUS_BY_FRESHNESS, LIVE_SIGNALS_RECORDED_TOTAL

logger = logging.getLogger(__name__)

# Confidence
BASE_SIGNAL_CONFIDENCE = 50
CHECK_IN_CONFIDENCE_STEP = 10
CHECK_IN_CONFIDENCE_CAP = 30
REPORT_CONFIDENCE_STEP = 5
REPORT_CONFIDENCE_CAP = 20
RECENCY_CONFIDENCE_BONUS = 20
PREDICTION_ONLY_CONFIDENCE = 30
NO_DATA_CONFIDENCE = 0
HIGH_CONFIDENCE_THRESHOLD = 70
MEDIUM_CONFIDENCE_THRESHOLD = 40

# Crowd level points: (min active check-ins, points), highest first
CHECK_IN_POINTS = ((10, 50), (5, 35), (2, 20), (1, 10))
PREDICTION_POINTS = {
    TrafficLevel.BUSY: 50,
    TrafficLevel.MODERATE: 30,
    TrafficLevel.LOW: 10,
}
# (exclusive upper bound, level), lowest first; anything above is packed
CROWD_POINT_LEVELS = (
    (20, ActivityLevel.DEAD),
    (40, ActivityLevel.QUIET),
    (60, ActivityLevel.ACTIVE),
    (80, ActivityLevel.BUSY),
)

TREND_WINDOW = 3
TREND_THRESHOLD = 0.5
CONDITION_WINDOW = 10
CONDITION_MIN_MENTIONS = 2

ACTIVITY_DISPLAY: dict[ActivityLevel, dict] = {
    ActivityLevel.DEAD: {"label": "Dead", "color": "#6B7280", "icon": "leaf-outline", "wait": None},
    ActivityLevel.QUIET: {"label": "Quiet", "color": "#22C55E", "icon": "people-outline", "wait": None},
    ActivityLevel.ACTIVE: {"label": "Active", "color": "#EAB308", "icon": "people", "wait": "~5 min"},
    ActivityLevel.BUSY: {"label": "Busy", "color": "#F97316", "icon": "alert-circle-outline", "wait": "10-15 min"},
    ActivityLevel.PACKED: {"label": "Packed", "color": "#EF4444", "icon": "flame-outline", "wait": "20+ min"},
}
NO_DATA_DISPLAY = {"label": "No data", "color": "#6B7280", "icon": "help-circle-outline", "wait": None}

CONDITION_TYPES: dict[str, Condition] = {
    c.type: c
    for c in (
        Condition(type="lights_on", label="Lights on", icon="bulb-outline", positive=True),
        Condition(type="lights_off", label="Lights off", icon="moon-outline", positive=False),
        Condition(type="wet_courts", label="Wet courts", icon="water-outline", positive=False),
        Condition(type="dry_courts", label="Dry courts", icon="sunny-outline", positive=True),
        Condition(type="nets_up", label="Nets up", icon="tennisball-outline", positive=True),
        Condition(type="nets_down", label="Nets down", icon="close-outline", positive=False),
        Condition(type="clean", label="Clean", icon="sparkles-outline", positive=True),
        Condition(type="dirty", label="Needs cleaning", icon="trash-outline", positive=False),
        Condition(type="games_running", label="Games running", icon="basketball-outline", positive=True),
        Condition(type="reserved", label="Reserved", icon="calendar-outline", positive=False),
    )
}


@dataclass(frozen=True)
class LiveWindows:
    """Time windows that decide how much live signals are trusted."""
    live_window: timedelta = timedelta(minutes=15)
    staleness_window: timedelta = timedelta(minutes=60)
    report_trust_window: timedelta = timedelta(minutes=30)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def data_freshness(
    prediction: Optional[PredictedStatus],
    signals: LiveSignals,
    now: datetime,
    live_window: timedelta,
) -> DataFreshness:
    """Live only when the newest check-in or report is inside live_window.

    Active check-ins older than that make the status stale, not live.
    """
    last_signal = signals.last_signal_at
    if last_signal is not None and _as_utc(now) - _as_utc(last_signal) <= live_window:
        return DataFreshness.LIVE
    if prediction is not None or last_signal is not None:
        return DataFreshness.STALE
    return DataFreshness.NO_DATA


def minutes_since(now: datetime, then: Optional[datetime]) -> Optional[int]:
    if then is None:
        return None
    return max(0, math.floor((_as_utc(now) - _as_utc(then)).total_seconds() / 60))


def calculate_confidence(
    prediction: Optional[PredictedStatus],
    signals: LiveSignals,
    now: datetime,
    windows: LiveWindows,
) -> int:
    """Confidence (0-100) in the displayed crowd level.

    Never decreases when check-ins or reports are added, and never increases
    as the last signal gets older.
    """
    last_signal = signals.last_signal_at
    age = _as_utc(now) - _as_utc(last_signal) if last_signal is not None else None

    if age is None or age > windows.staleness_window:
        return PREDICTION_ONLY_CONFIDENCE if prediction is not None else NO_DATA_CONFIDENCE

    if age <= windows.live_window:
        recency = RECENCY_CONFIDENCE_BONUS
    else:
        decay_span = (windows.staleness_window - windows.live_window).total_seconds()
        remaining = (windows.staleness_window - age).total_seconds()
        recency = math.floor(RECENCY_CONFIDENCE_BONUS * remaining / decay_span) if decay_span > 0 else 0

    recent_reports = sum(
        1 for r in signals.reports
        if _as_utc(now) - _as_utc(r.created_at) <= windows.staleness_window
    )

    confidence = (
        BASE_SIGNAL_CONFIDENCE
        + min(signals.active_check_ins * CHECK_IN_CONFIDENCE_STEP, CHECK_IN_CONFIDENCE_CAP)
        + min(recent_reports * REPORT_CONFIDENCE_STEP, REPORT_CONFIDENCE_CAP)
        + recency
    )
    return max(0, min(100, confidence))


def confidence_label(confidence: int) -> str:
    if confidence >= HIGH_CONFIDENCE_THRESHOLD:
        return "High"
    if confidence >= MEDIUM_CONFIDENCE_THRESHOLD:
        return "Medium"
    return "Low"


def check_in_points(active_check_ins: int) -> int:
    for minimum, points in CHECK_IN_POINTS:
        if active_check_ins >= minimum:
            return points
    return 0


def points_to_activity_level(points: int) -> ActivityLevel:
    for upper, level in CROWD_POINT_LEVELS:
        if points < upper:
            return level
    return ActivityLevel.PACKED


def calculate_crowd_level(
    prediction: Optional[PredictedStatus],
    signals: LiveSignals,
    now: datetime,
    report_trust_window: timedelta,
) -> Optional[ActivityLevel]:
    """Pick the crowd level to display. Live reports outrank the prediction.

    Returns None when there is nothing to base a level on.
    """
    for report in signals.reports:
        if _as_utc(now) - _as_utc(report.created_at) < report_trust_window:
            return report.crowd_level

    if prediction is None and signals.active_check_ins == 0:
        if signals.reports:
            return signals.reports[0].crowd_level
        return None

    points = check_in_points(signals.active_check_ins)
    if prediction is not None:
        points += PREDICTION_POINTS[prediction.level]
    return points_to_activity_level(points)


def calculate_trend(reports: list[QuickReport]) -> Trend:
    """Newest reports vs the ones just before them (reports newest first).

    Needs at least one report older than the newest window.
    """
    if len(reports) <= TREND_WINDOW:
        return Trend.STEADY

    recent = reports[:TREND_WINDOW]
    older = reports[TREND_WINDOW:TREND_WINDOW * 2]
    recent_avg = sum(r.crowd_level.rank for r in recent) / len(recent)
    older_avg = sum(r.crowd_level.rank for r in older) / len(older)

    if recent_avg > older_avg + TREND_THRESHOLD:
        return Trend.INCREASING
    if recent_avg < older_avg - TREND_THRESHOLD:
        return Trend.DECREASING
    return Trend.STEADY


def extract_conditions(reports: list[QuickReport]) -> list[Condition]:
    """Conditions mentioned repeatedly in recent reports, most mentioned first."""
    window = reports[:CONDITION_WINDOW]
    counts: dict[str, int] = {}
    for report in window:
        for code in report.conditions:
            counts[code] = counts.get(code, 0) + 1

    min_mentions = 1 if len(window) <= 2 else CONDITION_MIN_MENTIONS
    codes = sorted(
        (code for code, n in counts.items() if n >= min_mentions and code in CONDITION_TYPES),
        key=lambda code: (-counts[code], code),
    )
    return [CONDITION_TYPES[code] for code in codes]


def merge_live_status(
    venue_id: str,
    prediction: Optional[PredictedStatus],
    signals: LiveSignals,
    now: datetime,
    best_time_to_visit: Optional[str] = None,
    windows: LiveWindows = LiveWindows(),
) -> LiveStatus:
    """Build the live status of a venue from already-fetched inputs.

    Pure: no storage access and no clock reads besides `now`.

    Args:
        venue_id: Venue identifier
        prediction: Stored predicted status, if any
        signals: Live check-ins and reports
        now: Merge instant
        best_time_to_visit: Precomputed best-time hint, if any
        windows: Live / staleness / report-trust windows

    Returns:
        LiveStatus for display
    """
    freshness = data_freshness(prediction, signals, now, windows.live_window)
    last_signal = signals.last_signal_at

    minutes = None
    if freshness != DataFreshness.LIVE:
        minutes = minutes_since(now, last_signal)

    confidence = calculate_confidence(prediction, signals, now, windows)
    level = calculate_crowd_level(prediction, signals, now, windows.report_trust_window)
    display = ACTIVITY_DISPLAY[level] if level is not None else NO_DATA_DISPLAY

    return LiveStatus(
        venue_id=venue_id,
        crowd_level=level,
        crowd_icon=display["icon"],
        crowd_color=display["color"],
        crowd_label=display["label"],
        data_freshness=freshness,
        minutes_since_update=minutes,
        last_reported_at=last_signal,
        confidence=confidence,
        confidence_label=confidence_label(confidence),
        active_check_ins=signals.active_check_ins,
        report_count=len(signals.reports),
        predicted_wait=display["wait"],
        best_time_to_visit=best_time_to_visit,
        trend=calculate_trend(signals.reports),
        conditions=extract_conditions(signals.reports),
    )


class LiveStatusService:
    """Reads venue inputs from storage and merges them into a live status."""

    def __init__(
        self,
        venue_dao: RedisVenueDAO,
        scorer: Optional[HeuristicTrafficScorer] = None,
        windows: LiveWindows = LiveWindows(),
        check_in_active_hours: float = 2,
        report_lookback_hours: float = 24,
    ):
        self.venue_dao = venue_dao
        self.scorer = scorer
        self.windows = windows
        self.check_in_active_hours = check_in_active_hours
        self.report_lookback_hours = report_lookback_hours

    def _best_time(self, venue_id: str, now: datetime) -> Optional[str]:
        if self.scorer is None:
            return None
        venue = self.venue_dao.get_venue(venue_id)
        if venue is None or not venue.has_coordinates:
            return None
        return self.scorer.best_time_to_visit(
            venue.venue_lat,
            venue.venue_lng,
            venue.sport_type,
            now,
            timezone_name=venue.venue_timezone,
            country_code=venue.country_code,
        )

    def get_live_status(self, venue_id: str, now: Optional[datetime] = None) -> LiveStatus:
        """Current live status of a venue. Always returns a status."""
        now = now or datetime.now(timezone.utc)
        prediction = self.venue_dao.get_predicted_status(venue_id)
        signals = self.venue_dao.get_live_signals(
            venue_id,
            now,
            check_in_active_hours=self.check_in_active_hours,
            report_lookback_hours=self.report_lookback_hours,
        )
        status = merge_live_status(
            venue_id,
            prediction,
            signals,
            now,
            best_time_to_visit=self._best_time(venue_id, now),
            windows=self.windows,
        )
        LIVE_STATUS_BY_FRESHNESS.labels(freshness=status.data_freshness.value).inc()
        return status

    def submit_quick_report(
        self,
        venue_id: str,
        user_id: str,
        crowd_level: ActivityLevel,
        conditions: Optional[list[str]] = None,
        note: Optional[str] = None,
        verified: bool = False,
        now: Optional[datetime] = None,
    ) -> QuickReport:
        """Store a user's crowd report for a venue.

        Unknown condition codes are dropped.
        """
        crowd_level = ActivityLevel(crowd_level)
        report = QuickReport(
            report_id=uuid.uuid4().hex,
            venue_id=venue_id,
            user_id=user_id,
            crowd_level=crowd_level,
            conditions=[c for c in (conditions or []) if c in CONDITION_TYPES],
            note=note,
            created_at=now or datetime.now(timezone.utc),
            verified=verified,
        )
        self.venue_dao.add_report(report)
        LIVE_SIGNALS_RECORDED_TOTAL.labels(kind="report").inc()
        logger.info(f"[LiveStatusService] Quick report submitted for {venue_id}: {crowd_level.value}")
        return report

    def record_check_in(
        self, venue_id: str, user_id: str, now: Optional[datetime] = None
    ) -> CheckIn:
        """Record a user's check-in at a venue.

        Check-ins older than the active window are dropped on the way in.
        """
        check_in = CheckIn(
            venue_id=venue_id,
            user_id=user_id,
            created_at=now or datetime.now(timezone.utc),
        )
        self.venue_dao.record_check_in(check_in)
        expired_before = _as_utc(check_in.created_at) - timedelta(hours=self.check_in_active_hours)
        pruned = self.venue_dao.prune_check_ins(venue_id, expired_before)
        if pruned:
            logger.debug(f"[LiveStatusService] Pruned {pruned} expired check-ins for {venue_id}")
        LIVE_SIGNALS_RECORDED_TOTAL.labels(kind="check_in").inc()
        logger.info(f"[LiveStatusService] Check-in recorded for {venue_id}")
        return check_in
