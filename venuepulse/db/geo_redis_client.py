"""Redis client with geospatial, sorted-set and list operations."""
import json
import logging
from typing import Any, Optional
import redis

logger = logging.getLogger(__name__)


class GeoRedisClient:
    """Thin wrapper over a redis-py client used by the venue DAO."""

    def __init__(self, client):
        """Initialize Redis client.

        Args:
            client: redis-py client (decode_responses=True)
        """
        logger.info("Passing redis client")
        self.client = client

        # Test connection
        try:
            self.ping()
            logger.info("Connected to Redis")
        except redis.ConnectionError as e:
            logger.error(f"Could not connect to Redis: {e}")
            raise

    def set(self, key: str, value: str) -> None:
        """Set a key-value pair in Redis.

        Args:
            key: Redis key
            value: String value to store
        """
        self.client.set(key, value)

    def get(self, key: str) -> Optional[str]:
        """Get value for a given key from Redis.

        Args:
            key: Redis key

        Returns:
            String value or None if key doesn't exist
        """
        return self.client.get(key)

    def set_many(self, items: dict[str, str]) -> int:
        """Write many key-value pairs in one pipelined round trip.

        Args:
            items: Mapping of key to string value

        Returns:
            Number of keys written
        """
        if not items:
            return 0
        pipe = self.client.pipeline(transaction=False)
        for key, value in items.items():
            pipe.set(key, value)
        pipe.execute()
        return len(items)

    def keys(self, pattern: str) -> list[str]:
        """Return all keys matching the given pattern.

        Args:
            pattern: Redis key pattern (e.g., "prefix:*")

        Returns:
            List of matching keys
        """
        return self.client.keys(pattern)

    def zadd(self, name: str, member: str, score: float) -> None:
        """Add (or re-score) a member of a sorted set."""
        self.client.zadd(name, {member: score})

    def zcount(self, name: str, min_score: float, max_score: float) -> int:
        """Count sorted-set members with min_score <= score <= max_score."""
        return self.client.zcount(name, min_score, max_score)

    def zmax_score(self, name: str) -> Optional[float]:
        """Return the highest score in a sorted set, or None if empty."""
        top = self.client.zrevrange(name, 0, 0, withscores=True)
        if not top:
            return None
        return float(top[0][1])

    def zremrangebyscore(self, name: str, min_score, max_score) -> int:
        """Remove sorted-set members within a score range.

        Bounds follow Redis syntax, so "(" makes one exclusive.
        """
        return self.client.zremrangebyscore(name, min_score, max_score)

    def rpush(self, name: str, value: str) -> int:
        """Append a value to a list.

        Returns:
            Length of the list after the push
        """
        return self.client.rpush(name, value)

    def lrange(self, name: str, start: int = 0, end: int = -1) -> list[str]:
        """Return list elements between start and end (inclusive)."""
        return self.client.lrange(name, start, end)

    def add_location_with_json(
        self,
        geo_key: str,
        member_key: str,
        lat: float,
        lon: float,
        data: Any,
    ) -> None:
        """Store geolocation with associated JSON data.

        This method:
        1. Adds the location to a geospatial index using GEOADD
        2. Stores the JSON data separately using SET

        Args:
            geo_key: Redis geo set key (e.g., "venues_geo_v1")
            member_key: Member identifier in the geo set (e.g., "venues_geo_place_v1:venue_123")
            lat: Latitude
            lon: Longitude
            data: Python object to serialize as JSON
        """
        if hasattr(data, "model_dump"):
            json_data = data.model_dump_json(by_alias=True)
        else:
            json_data = json.dumps(data)

        # Note: Redis GEOADD expects (longitude, latitude) order
        self.client.geoadd(geo_key, (lon, lat, member_key))
        self.client.set(member_key, json_data)

        logger.debug(f"Added geolocation and JSON for member: {member_key}")

    def get_locations_within_radius(
        self,
        key: str,
        lat: float,
        lon: float,
        radius: float,
    ) -> list[tuple[str, float]]:
        """Find all locations within the given radius.

        Args:
            key: Redis geo set key
            lat: Center latitude
            lon: Center longitude
            radius: Radius in kilometers

        Returns:
            List of (JSON string, distance in km) for matching locations
        """
        logger.debug(f"Reading from radius with key: {key}")

        results = self.client.georadius(
            key,
            longitude=lon,
            latitude=lat,
            radius=radius,
            unit="km",
            withdist=True,
        )

        objects = []
        for member_name, distance in results:
            try:
                data = self.client.get(member_name)
                if data:
                    objects.append((data, float(distance)))
            except redis.RedisError as e:
                logger.warning(f"Skipping member {member_name} due to error: {e}")
                continue

        return objects

    def ping(self) -> bool:
        """Check connectivity to Redis.

        Returns:
            True if connected

        Raises:
            redis.ConnectionError if connection fails
        """
        return self.client.ping()
