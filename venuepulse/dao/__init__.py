"""Data access objects."""
from venuepulse.dao.redis_venue_dao import RedisVenueDAO

__all__ = ["RedisVenueDAO"]
