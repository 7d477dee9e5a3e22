"""Dependency injection container for application components."""
import logging
from datetime import timedelta

import redis

from venuepulse.config import Settings
from venuepulse.db import GeoRedisClient
from venuepulse.dao import RedisVenueDAO
from venuepulse.prediction import GeoDensityResolver, HeuristicTrafficScorer, load_geo_cities
from venuepulse.services import (
    LiveStatusService,
    LiveWindows,
    PredictionRefresherService,
    ValidationService,
)
from venuepulse.handlers import VenueHandler

logger = logging.getLogger(__name__)


class Container:
    """Dependency injection container.

    Initializes and wires up all application dependencies.
    """

    def __init__(self, settings: Settings, redis_internal_client=None):
        """Initialize container with all dependencies.

        Args:
            settings: Application settings
            redis_internal_client: Pre-built redis-py client (built from settings if None)
        """
        logger.info("[Container] Initializing container")
        self.settings = settings

        if redis_internal_client is None:
            logger.info(
                f"[Container] Connecting to Redis at {settings.redis_host}:{settings.redis_port}"
            )
            redis_internal_client = redis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password or None,
                db=settings.redis_db,
                decode_responses=True,
            )

        # GeoRedisClient pings on construction and raises if Redis is down
        self.redis_client = GeoRedisClient(redis_internal_client)
        self.redis_venue_dao = RedisVenueDAO(self.redis_client)

        # Static city density table, loaded once
        cities_path = settings.get_resource_path(settings.geo_cities_resource)
        self.geo_cities = load_geo_cities(cities_path)
        self.geo_resolver = GeoDensityResolver(
            self.geo_cities,
            max_distance_degrees=settings.geo_match_max_degrees,
        )
        self.scorer = HeuristicTrafficScorer(self.geo_resolver)

        # Initialize services
        self.prediction_refresher_service = PredictionRefresherService(
            self.redis_venue_dao,
            self.scorer,
            batch_size=settings.prediction_batch_size,
            storage_timeout_seconds=settings.storage_timeout_seconds,
        )
        self.live_status_service = LiveStatusService(
            self.redis_venue_dao,
            scorer=self.scorer,
            windows=LiveWindows(
                live_window=timedelta(minutes=settings.live_window_minutes),
                staleness_window=timedelta(minutes=settings.staleness_window_minutes),
                report_trust_window=timedelta(minutes=settings.report_trust_minutes),
            ),
            check_in_active_hours=settings.check_in_active_hours,
            report_lookback_hours=settings.report_lookback_hours,
        )
        self.validation_service = ValidationService(self.redis_venue_dao)

        # Initialize handlers
        self.venue_handler = VenueHandler(
            self.redis_venue_dao,
            self.scorer,
            self.live_status_service,
            self.validation_service,
        )

        logger.info("[Container] Container initialized successfully")

    async def shutdown(self):
        """Clean up resources on shutdown."""
        logger.info("[Container] Shutting down container")
        try:
            self.redis_client.client.close()
            logger.info("[Container] Redis client closed")
        except redis.RedisError as e:
            logger.error(f"[Container] Error closing Redis client: {e}")
