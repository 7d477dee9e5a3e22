"""Services package."""
from venuepulse.services.prediction_refresher_service import (
    PredictionRefresherService,
    RefreshResult,
    compute_predictions,
)
from venuepulse.services.live_status_service import (
    LiveStatusService,
    LiveWindows,
    merge_live_status,
)
from venuepulse.services.validation_service import (
    ValidationService,
    PendingValidation,
    IncompleteValidationError,
)

__all__ = [
    "PredictionRefresherService",
    "RefreshResult",
    "compute_predictions",
    "LiveStatusService",
    "LiveWindows",
    "merge_live_status",
    "ValidationService",
    "PendingValidation",
    "IncompleteValidationError",
]
