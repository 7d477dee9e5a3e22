"""Static geo reference data models."""
from pydantic import BaseModel, ConfigDict, field_validator


class GeoCity(BaseModel):
    """A population center from the static density table.

    coordinate_key is the rounded "lat,lon" pair the table is keyed on,
    e.g. "40.7,-74.0" for New York.
    """

    coordinate_key: str
    display_name: str
    population_density: float  # people / km^2
    population: int
    country_code: str
    timezone: str = "UTC"

    model_config = ConfigDict(frozen=True)

    @field_validator("coordinate_key")
    @classmethod
    def validate_coordinate_key(cls, v: str) -> str:
        parts = v.split(",")
        if len(parts) != 2:
            raise ValueError(f"coordinate_key must be 'lat,lon', got {v!r}")
        lat, lon = (float(p) for p in parts)
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise ValueError(f"coordinate_key out of range: {v!r}")
        return v.replace(" ", "")

    @property
    def lat(self) -> float:
        return float(self.coordinate_key.split(",")[0])

    @property
    def lon(self) -> float:
        return float(self.coordinate_key.split(",")[1])
