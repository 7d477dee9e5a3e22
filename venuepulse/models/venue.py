"""Venue data models using Pydantic."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class VenueType(str, Enum):
    """Sport / facility type of a venue, as used by the traffic scorer."""

    TENNIS = "tennis"
    PICKLEBALL = "pickleball"
    BASKETBALL = "basketball"
    SOCCER = "soccer"
    VOLLEYBALL = "volleyball"
    GYM = "gym"
    POOL = "pool"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: Any) -> "VenueType":
        """Map a raw sport string to a VenueType.

        Unknown or missing values fall back to GENERAL instead of failing.
        """
        if isinstance(value, VenueType):
            return value
        if not value:
            return cls.GENERAL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERAL

    @property
    def is_racket_sport(self) -> bool:
        return self in (VenueType.TENNIS, VenueType.PICKLEBALL)


class Venue(BaseModel):
    """Venue with location and the metadata the predictor needs."""

    venue_id: str
    venue_name: str = ""

    # Location data (optional: venues without coordinates are never scored)
    venue_lat: Optional[float] = None
    venue_lng: Optional[float] = None

    sport_type: VenueType = VenueType.GENERAL
    country_code: Optional[str] = None
    venue_timezone: Optional[str] = None  # IANA name, e.g. "America/New_York"

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("sport_type", mode="before")
    @classmethod
    def normalize_sport_type(cls, v: Any) -> VenueType:
        """Accept any sport string; unknown sports become "general"."""
        return VenueType.parse(v)

    @property
    def has_coordinates(self) -> bool:
        return self.venue_lat is not None and self.venue_lng is not None

    def __str__(self) -> str:
        return (
            f"Venue(id={self.venue_id}, name={self.venue_name}, "
            f"lat={self.venue_lat}, lon={self.venue_lng}, sport={self.sport_type.value})"
        )

