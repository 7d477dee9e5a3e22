"""FastAPI routes for venue endpoints."""
import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

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
from venuepulse.services import IncompleteValidationError

logger = logging.getLogger(__name__)

# Create router at module level
router = APIRouter()

# Global handler reference - set during startup
_venue_handler = None


def set_venue_handler(handler):
    """Set the venue handler instance (called during startup)."""
    global _venue_handler
    _venue_handler = handler
    logger.info("[VenueRouter] Handler injected successfully")


def get_handler():
    """Get the venue handler, raising error if not initialized."""
    if _venue_handler is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return _venue_handler


@router.get(
    "/v1/venues/nearby",
    response_model=list[NearbyVenueStatus],
    summary="Get nearby venues",
    description="Get venues within a radius of a location with their live status, quietest first",
)
def get_venues_nearby(
    lat: float = Query(..., description="Latitude", ge=-90, le=90),
    lon: float = Query(..., description="Longitude", ge=-180, le=180),
    radius: float = Query(..., description="Radius in kilometers", gt=0),
) -> list[NearbyVenueStatus]:
    """Get nearby venues with live status."""
    try:
        handler = get_handler()
        return handler.get_venues_nearby(lat, lon, radius)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in get_venues_nearby: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/v1/venues/{venue_id}/prediction",
    response_model=PredictedStatus,
    summary="Get predicted status",
    description="Latest predicted traffic level from the scheduled refresh",
)
def get_prediction(venue_id: str) -> PredictedStatus:
    try:
        handler = get_handler()
        prediction = handler.get_prediction(venue_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in get_prediction: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if prediction is None:
        raise HTTPException(status_code=404, detail="No prediction for venue")
    return prediction


@router.get(
    "/v1/venues/{venue_id}/prediction/explain",
    response_model=ScoreBreakdown,
    summary="Explain prediction",
    description="Per-feature contributions to the traffic score right now",
)
def explain_prediction(venue_id: str) -> ScoreBreakdown:
    try:
        handler = get_handler()
        breakdown = handler.explain_prediction(venue_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in explain_prediction: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if breakdown is None:
        raise HTTPException(status_code=404, detail="Venue not found or has no coordinates")
    return breakdown


@router.get(
    "/v1/venues/{venue_id}/status",
    response_model=LiveStatus,
    summary="Get live status",
    description="Prediction merged with live check-ins and crowd reports",
)
def get_status(venue_id: str) -> LiveStatus:
    try:
        handler = get_handler()
        return handler.get_status(venue_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in get_status: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/v1/venues/{venue_id}/reports",
    response_model=QuickReport,
    status_code=201,
    summary="Submit crowd report",
)
def submit_report(venue_id: str, body: QuickReportRequest) -> QuickReport:
    try:
        handler = get_handler()
        return handler.submit_report(venue_id, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in submit_report: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/v1/venues/{venue_id}/check-ins",
    response_model=CheckIn,
    status_code=201,
    summary="Check in at a venue",
)
def record_check_in(venue_id: str, body: CheckInRequest) -> CheckIn:
    try:
        handler = get_handler()
        return handler.record_check_in(venue_id, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in record_check_in: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/v1/venues/{venue_id}/validations",
    response_model=ValidationRecord,
    status_code=201,
    summary="Validate a past prediction",
    description=(
        "accurate=true stores the prediction as correct. accurate=false needs "
        "actual_level; without it nothing is stored and 202 is returned."
    ),
    responses={202: {"description": "Validation incomplete, nothing stored"}},
)
def submit_validation(venue_id: str, submission: ValidationSubmission):
    try:
        handler = get_handler()
        return handler.submit_validation(venue_id, submission)
    except IncompleteValidationError:
        return JSONResponse(status_code=202, content={"status": "incomplete"})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in submit_validation: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/v1/venues/{venue_id}/accuracy",
    response_model=AccuracySummary,
    summary="Prediction accuracy",
    description="Accuracy of past predictions from user validations",
)
def get_accuracy(venue_id: str) -> AccuracySummary:
    try:
        handler = get_handler()
        return handler.get_accuracy(venue_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[VenueRouter] Error in get_accuracy: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/ping",
    summary="Health check",
    description="Health check endpoint",
)
def ping() -> dict[str, str]:
    """Health check endpoint."""
    handler = get_handler()
    return handler.ping()
