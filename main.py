"""Main entry point for the venuepulse application.

Startup sequence:
1. Initialize DI container
2. Run initial prediction refresh (if enabled)
3. Start scheduled background jobs
4. Start HTTP server with FastAPI
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from venuepulse.config import Settings
from venuepulse.container import Container
from venuepulse.routers import venue_router, set_venue_handler
from venuepulse.middleware import PrometheusMiddleware
from venuepulse.metrics import (
    BACKGROUND_JOB_RUNS_TOTAL,
    BACKGROUND_JOB_DURATION_SECONDS,
    BACKGROUND_JOB_LAST_RUN_TIMESTAMP,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global container and scheduler
container: Container = None
scheduler: AsyncIOScheduler = None


async def run_prediction_refresh_job():
    """Background job: Recompute predicted status for all venues."""
    job_name = "prediction_refresh"
    logger.info("[Scheduler] Running PredictionRefreshJob")
    start_time = time.perf_counter()
    try:
        result = await container.prediction_refresher_service.refresh_predictions_for_all_venues()
        duration = time.perf_counter() - start_time
        BACKGROUND_JOB_DURATION_SECONDS.labels(job_name=job_name).observe(duration)
        BACKGROUND_JOB_RUNS_TOTAL.labels(job_name=job_name, status="success").inc()
        BACKGROUND_JOB_LAST_RUN_TIMESTAMP.labels(job_name=job_name).set_to_current_time()
        logger.info(f"[Scheduler] PredictionRefreshJob completed: {result}")
    except Exception as e:
        duration = time.perf_counter() - start_time
        BACKGROUND_JOB_DURATION_SECONDS.labels(job_name=job_name).observe(duration)
        BACKGROUND_JOB_RUNS_TOTAL.labels(job_name=job_name, status="error").inc()
        logger.error(f"[Scheduler] PredictionRefreshJob failed: {e}")


def start_background_jobs(settings: Settings):
    """Start all background jobs using APScheduler."""
    global scheduler
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        run_prediction_refresh_job,
        trigger=IntervalTrigger(minutes=settings.prediction_refresh_minutes),
        id="prediction_refresh",
        name="Prediction Refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        f"[Scheduler] Scheduled prediction refresh every "
        f"{settings.prediction_refresh_minutes} minutes"
    )

    scheduler.start()
    logger.info("[Scheduler] Background jobs started")


async def startup_sequence(settings: Settings):
    """Build the container, run the initial refresh and start jobs."""
    global container

    logger.info("[Main] Starting startup sequence")

    logger.info("[Main] Initializing DI container")
    container = Container(settings)

    # Inject handler into router (routes already registered at app creation)
    logger.info("[Main] Injecting handler into router")
    set_venue_handler(container.venue_handler)

    if settings.refresh_on_startup:
        logger.info("[Main] Refreshing predictions (initial load)")
        await run_prediction_refresh_job()
    else:
        logger.info("[Main] Skipping initial refresh (REFRESH_ON_STARTUP=false)")

    logger.info("[Main] Starting periodic jobs")
    start_background_jobs(settings)

    logger.info("[Main] Startup sequence completed")


async def shutdown_sequence():
    """Clean up resources on shutdown."""
    global container, scheduler

    logger.info("[Main] Starting shutdown sequence")

    if scheduler:
        logger.info("[Main] Stopping scheduler")
        scheduler.shutdown(wait=False)

    if container:
        await container.shutdown()

    logger.info("[Main] Shutdown sequence completed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown."""
    settings = Settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    await startup_sequence(settings)
    yield
    await shutdown_sequence()


# Create FastAPI app
settings = Settings()
app = FastAPI(
    title="venuepulse API",
    description="Venue activity prediction and validation feedback service",
    version="1.0.0",
    lifespan=lifespan,
)

# Add Prometheus metrics middleware
app.add_middleware(PrometheusMiddleware)

# Register router at app creation time (before uvicorn starts)
app.include_router(venue_router)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/metrics", response_class=PlainTextResponse)
def metrics():
    """Prometheus metrics endpoint for scraping."""
    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


if __name__ == "__main__":
    import uvicorn

    logger.info("[Main] Starting venuepulse")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
