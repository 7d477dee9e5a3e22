"""Prediction validation (post-visit feedback) models."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from venuepulse.models.prediction import ActivityLevel


class ValidationRecord(BaseModel):
    """User judgment of a past prediction. Append-only, never mutated."""

    record_id: str
    venue_id: str
    prediction_time: datetime
    visit_time: datetime
    predicted_level: ActivityLevel
    actual_level: ActivityLevel
    was_accurate: bool
    user_id: str
    submitted_at: datetime


class ValidationSubmission(BaseModel):
    """Body of a validation request from the app.

    accurate=True is the one-tap "prediction was right" path. accurate=False
    must carry the level the user actually saw; without it the flow is not
    complete and nothing is stored.
    """

    predicted_level: ActivityLevel
    accurate: bool
    actual_level: Optional[ActivityLevel] = None
    user_id: str = Field(min_length=1)
    prediction_time: Optional[datetime] = None
    visit_time: Optional[datetime] = None


class AccuracySummary(BaseModel):
    """Accuracy of past predictions for a venue, from stored validations."""

    venue_id: str
    total_predictions: int = 0
    correct_predictions: int = 0
    accuracy_rate: int = Field(default=0, ge=0, le=100)
    confidence: str = "low"  # low | medium | high | very_high
    data_points: int = 0
