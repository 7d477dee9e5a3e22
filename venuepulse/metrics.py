"""Prometheus metrics definitions for venuepulse.

Exposes metrics for:
1. HTTP API metrics (requests, latency, errors)
2. Background job metrics (runs, duration, errors)
3. Prediction batch metrics (levels, flushes, skips)
4. Live status and validation feedback metrics
"""
from prometheus_client import Counter, Histogram, Gauge, Info

# =============================================================================
# HTTP API METRICS
# =============================================================================

# Request counter with method, endpoint, and status labels
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Request latency histogram
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Active requests gauge
HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# Request size histogram
HTTP_REQUEST_SIZE_BYTES = Histogram(
    "http_request_size_bytes",
    "HTTP request body size in bytes",
    ["method", "endpoint"],
    buckets=(100, 500, 1000, 5000, 10000, 50000, 100000),
)

# Response size histogram
HTTP_RESPONSE_SIZE_BYTES = Histogram(
    "http_response_size_bytes",
    "HTTP response body size in bytes",
    ["method", "endpoint"],
    buckets=(100, 500, 1000, 5000, 10000, 50000, 100000, 500000),
)

# =============================================================================
# BACKGROUND JOB METRICS
# =============================================================================

# Job run counter
BACKGROUND_JOB_RUNS_TOTAL = Counter(
    "background_job_runs_total",
    "Total number of background job runs",
    ["job_name", "status"],  # status: success, error
)

# Job duration
BACKGROUND_JOB_DURATION_SECONDS = Histogram(
    "background_job_duration_seconds",
    "Background job execution duration in seconds",
    ["job_name"],
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0),
)

# Last job run timestamp
BACKGROUND_JOB_LAST_RUN_TIMESTAMP = Gauge(
    "background_job_last_run_timestamp_seconds",
    "Unix timestamp of the last successful job run",
    ["job_name"],
)

# =============================================================================
# PREDICTION REFRESH METRICS
# =============================================================================

# Predictions computed in last refresh, by level
PREDICTIONS_BY_LEVEL = Gauge(
    "predictions_by_level",
    "Number of venues per predicted traffic level in the last refresh",
    ["level"],  # level: low, moderate, busy
)

# Venues skipped in refresh
PREDICTIONS_SKIPPED_TOTAL = Counter(
    "predictions_skipped_total",
    "Total number of venues skipped during prediction refresh",
    ["reason"],  # reason: no_coordinates, flush_failed, flush_timeout
)

# Batch flushes
PREDICTION_BATCH_FLUSHES_TOTAL = Counter(
    "prediction_batch_flushes_total",
    "Total number of prediction batch flushes",
    ["status"],  # status: success, error, timeout
)

# Venues seen in last refresh
REFRESH_VENUES_SEEN = Gauge(
    "refresh_venues_seen",
    "Number of venues read in the last prediction refresh",
)

# Geo lookups
GEO_LOOKUP_RESULTS = Counter(
    "geo_lookup_results_total",
    "Results of nearest-city lookups during prediction refresh",
    ["result"],  # result: matched, no_match
)

# =============================================================================
# LIVE STATUS METRICS
# =============================================================================

LIVE_STATUS_BY_FRESHNESS = Counter(
    "live_status_by_freshness_total",
    "Total number of live statuses served, by data freshness",
    ["freshness"],  # freshness: live, stale, no_data
)

LIVE_SIGNALS_RECORDED_TOTAL = Counter(
    "live_signals_recorded_total",
    "Total number of live signals recorded",
    ["kind"],  # kind: check_in, report
)

# =============================================================================
# VALIDATION FEEDBACK METRICS
# =============================================================================

VALIDATION_RECORDS_TOTAL = Counter(
    "validation_records_total",
    "Total number of validation records written",
    ["accurate"],  # accurate: true, false
)

VALIDATION_INCOMPLETE_TOTAL = Counter(
    "validation_incomplete_total",
    "Total number of inaccurate-path validations abandoned without an actual level",
)

# =============================================================================
# APPLICATION INFO
# =============================================================================

APP_INFO = Info(
    "venuepulse",
    "venuepulse application information",
)

APP_INFO.info({
    "version": "1.0.0",
    "description": "Venue activity prediction and validation feedback service",
})
