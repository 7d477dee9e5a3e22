"""HTTP request handlers."""
from venuepulse.handlers.venue_handler import VenueHandler

__all__ = ["VenueHandler"]
