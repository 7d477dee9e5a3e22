"""Unit tests for the nearest-city resolver."""
import json

import pytest

from venuepulse.models import GeoCity
from venuepulse.prediction import GeoDensityResolver, load_geo_cities


def make_city(key: str, name: str, density: float = 1000) -> GeoCity:
    return GeoCity(
        coordinate_key=key,
        display_name=name,
        population_density=density,
        population=100000,
        country_code="US",
    )


class TestGeoDensityResolver:
    """Resolver lookup rules."""

    def test_resolves_new_york(self, resolver):
        city = resolver.resolve(40.7128, -74.0060)
        assert city is not None
        assert city.display_name == "New York"
        assert city.population_density == 27016

    def test_nearest_wins_between_close_cities(self, resolver):
        """Philadelphia is closer than New York for a point in Philadelphia."""
        city = resolver.resolve(39.95, -75.16)
        assert city.display_name == "Philadelphia"

    def test_no_match_in_open_ocean(self, resolver):
        assert resolver.resolve(0.0, -150.0) is None

    def test_deterministic(self, resolver):
        results = {resolver.resolve(51.5, -0.12).coordinate_key for _ in range(10)}
        assert results == {"51.5,-0.1"}

    def test_threshold_is_strict(self):
        resolver = GeoDensityResolver([make_city("0.0,0.0", "Origin")], max_distance_degrees=5.0)

        assert resolver.resolve(5.0, 0.0) is None
        assert resolver.resolve(4.99, 0.0).display_name == "Origin"

    def test_match_across_grid_cells(self):
        """A city just across a grid cell border is still found."""
        resolver = GeoDensityResolver([make_city("5.1,0.0", "North")], max_distance_degrees=5.0)

        city = resolver.resolve(4.9, 0.0)
        assert city is not None
        assert city.display_name == "North"

    def test_negative_coordinates(self, resolver):
        city = resolver.resolve(-33.87, 151.21)
        assert city.display_name == "Sydney"

    def test_tie_goes_to_first_city_in_table(self):
        cities = [make_city("1.0,0.0", "First"), make_city("-1.0,0.0", "Second")]

        assert GeoDensityResolver(cities).resolve(0.0, 0.0).display_name == "First"
        assert GeoDensityResolver(list(reversed(cities))).resolve(0.0, 0.0).display_name == "Second"

    def test_empty_table(self):
        assert GeoDensityResolver([]).resolve(40.7, -74.0) is None

    def test_rejects_non_positive_threshold(self):
        with pytest.raises(ValueError):
            GeoDensityResolver([], max_distance_degrees=0)


class TestLoadGeoCities:
    """City table loading."""

    def test_shipped_table(self, geo_cities):
        assert len(geo_cities) == 59
        assert geo_cities[0].display_name == "New York"
        assert all(c.timezone for c in geo_cities)

    def test_rejects_duplicate_keys(self, tmp_path):
        path = tmp_path / "cities.json"
        entry = {
            "coordinate_key": "40.7,-74.0",
            "display_name": "New York",
            "population_density": 27016,
            "population": 8400000,
            "country_code": "US",
        }
        path.write_text(json.dumps({"cities": [entry, dict(entry, display_name="Copy")]}))

        with pytest.raises(ValueError, match="Duplicate"):
            load_geo_cities(path)

    def test_accepts_bare_list(self, tmp_path):
        path = tmp_path / "cities.json"
        path.write_text(json.dumps([{
            "coordinate_key": "1.3,103.8",
            "display_name": "Singapore",
            "population_density": 8300,
            "population": 5700000,
            "country_code": "SG",
        }]))

        cities = load_geo_cities(path)
        assert [c.display_name for c in cities] == ["Singapore"]
        assert cities[0].timezone == "UTC"

    def test_invalid_coordinate_key(self):
        with pytest.raises(ValueError):
            make_city("91.0,0.0", "Nowhere")
