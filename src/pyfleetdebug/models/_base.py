"""Base model and shared value types.

Every pyfleetdebug model inherits from :class:`FleetBaseModel` which is
frozen, ignores unknown keys and accepts both field names and aliases.
Raw log payloads reach the models with lower-cased keys, so aliases are
spelled in lower case.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pyfleetdebug.ingestion.normalize import safe_float


class FleetBaseModel(BaseModel):
    """Base for pyfleetdebug value objects."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


class LatLng(FleetBaseModel):
    """A WGS84 coordinate.

    Accepts ``latitude``/``longitude`` (Fleet Engine payloads) as well as
    ``lat``/``lng`` (map-layer style) keys.
    """

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @classmethod
    def from_payload(cls, payload: Any) -> LatLng | None:
        """Build a coordinate from a raw mapping, or ``None`` if incomplete."""
        if isinstance(payload, LatLng):
            return payload
        if not isinstance(payload, dict):
            return None
        lat = safe_float(payload.get("latitude", payload.get("lat")))
        lng = safe_float(payload.get("longitude", payload.get("lng", payload.get("lon"))))
        if lat is None or lng is None:
            return None
        return cls(latitude=lat, longitude=lng)

    def __str__(self) -> str:
        return f"({self.latitude}, {self.longitude})"
