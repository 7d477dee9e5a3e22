"""Redis client layer."""
from venuepulse.db.geo_redis_client import GeoRedisClient

__all__ = ["GeoRedisClient"]
