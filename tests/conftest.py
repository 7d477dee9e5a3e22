"""Shared fixtures: the real city table, resolver and scorer."""
from pathlib import Path

import pytest

from venuepulse.prediction import GeoDensityResolver, HeuristicTrafficScorer, load_geo_cities

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"


@pytest.fixture(scope="session")
def geo_cities():
    """City density table shipped with the service."""
    return load_geo_cities(RESOURCES_DIR / "geo_cities.json")


@pytest.fixture(scope="session")
def resolver(geo_cities):
    return GeoDensityResolver(geo_cities)


@pytest.fixture(scope="session")
def scorer(resolver):
    return HeuristicTrafficScorer(resolver)
