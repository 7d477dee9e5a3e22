"""Nearest population center lookup over the static city density table."""
import json
import logging
import math
from pathlib import Path
from typing import Iterable, Optional, Union

from venuepulse.models.geo import GeoCity

logger = logging.getLogger(__name__)

DEFAULT_MAX_DISTANCE_DEGREES = 5.0


def load_geo_cities(path: Union[str, Path]) -> list[GeoCity]:
    """Load the city density table from a JSON resource.

    The file holds {"cities": [...]} (or a bare list). File order is kept,
    since it decides ties between equidistant cities.

    Args:
        path: Path to the JSON resource

    Returns:
        List of GeoCity in file order

    Raises:
        ValueError: If two entries share a coordinate key
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    entries = raw.get("cities", []) if isinstance(raw, dict) else raw
    cities = [GeoCity.model_validate(entry) for entry in entries]

    seen: set[str] = set()
    for city in cities:
        if city.coordinate_key in seen:
            raise ValueError(f"Duplicate coordinate key in city table: {city.coordinate_key}")
        seen.add(city.coordinate_key)

    logger.info(f"[GeoDensityResolver] Loaded {len(cities)} cities from {path}")
    return cities


class GeoDensityResolver:
    """Maps a coordinate to the nearest known population center.

    Distance is plain Euclidean distance in degrees, not great-circle distance.
    A city only matches when it is strictly closer than max_distance_degrees.

    Cities are bucketed into a square grid with cell size equal to the match
    threshold, so any match lies in the 3x3 block of cells around the query.
    """

    def __init__(
        self,
        cities: Iterable[GeoCity],
        max_distance_degrees: float = DEFAULT_MAX_DISTANCE_DEGREES,
    ):
        if max_distance_degrees <= 0:
            raise ValueError("max_distance_degrees must be positive")

        self.cities: list[GeoCity] = list(cities)
        self.max_distance_degrees = max_distance_degrees
        self._grid: dict[tuple[int, int], list[int]] = {}

        for index, city in enumerate(self.cities):
            self._grid.setdefault(self._cell(city.lat, city.lon), []).append(index)

    def _cell(self, lat: float, lon: float) -> tuple[int, int]:
        return (
            math.floor(lat / self.max_distance_degrees),
            math.floor(lon / self.max_distance_degrees),
        )

    def _candidates(self, lat: float, lon: float) -> list[int]:
        row, col = self._cell(lat, lon)
        indexes: list[int] = []
        for d_row in (-1, 0, 1):
            for d_col in (-1, 0, 1):
                indexes.extend(self._grid.get((row + d_row, col + d_col), []))
        # Table order decides ties
        return sorted(indexes)

    def resolve(self, lat: float, lon: float) -> Optional[GeoCity]:
        """Return the nearest city within the threshold, or None.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees

        Returns:
            Nearest GeoCity, or None when nothing is close enough
        """
        best: Optional[GeoCity] = None
        best_distance = self.max_distance_degrees

        for index in self._candidates(lat, lon):
            city = self.cities[index]
            distance = math.sqrt((lat - city.lat) ** 2 + (lon - city.lon) ** 2)
            if distance < best_distance:
                best = city
                best_distance = distance

        if best is None:
            logger.debug(f"[GeoDensityResolver] No city within {self.max_distance_degrees} deg of ({lat}, {lon})")
        return best
