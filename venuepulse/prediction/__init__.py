"""Storage-free prediction core: geo resolver, features and scorer."""
from venuepulse.prediction.geo_density import GeoDensityResolver, load_geo_cities
from venuepulse.prediction.features import extract_features, is_school_in_session, to_venue_local
from venuepulse.prediction.scorer import HeuristicTrafficScorer, score_features, score_to_level

__all__ = [
    "GeoDensityResolver",
    "load_geo_cities",
    "extract_features",
    "is_school_in_session",
    "to_venue_local",
    "HeuristicTrafficScorer",
    "score_features",
    "score_to_level",
]
