from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceType(str, Enum):
    VETERINARIAN = "veterinarian"
    GROOMING = "grooming"
    PET_SITTING = "pet_sitting"
    PET_BOARDING = "pet_boarding"
    PET_SUPPLIES = "pet_supplies"
    PET_TRAINING = "pet_training"
    PET_WALKING = "pet_walking"
    PET_PHOTOGRAPHY = "pet_photography"
    OTHER_SERVICE = "other_service"


class Point(BaseModel):
    longitude: float = Field(ge=-180.0, le=180.0)
    latitude: float = Field(ge=-90.0, le=90.0)

    model_config = ConfigDict(frozen=True)

    def to_geojson(self) -> dict[str, Any]:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}

    @classmethod
    def from_geojson(cls, value: Any) -> "Point":
        """Read a stored GeoJSON point (``[lng, lat]`` order)."""
        if not isinstance(value, dict):
            raise ValueError("Location coordinates must be a GeoJSON Point.")
        coordinates = value.get("coordinates")
        if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
            raise ValueError("GeoJSON Point must hold exactly [longitude, latitude].")
        return cls(longitude=float(coordinates[0]), latitude=float(coordinates[1]))


class Location(BaseModel):
    address: str = ""
    coordinates: Point

    model_config = ConfigDict(extra="forbid")

    def to_document(self) -> dict[str, Any]:
        return {"address": self.address, "coordinates": self.coordinates.to_geojson()}


class BusinessSummary(BaseModel):
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    review_count: int = Field(default=0, ge=0)


class BusinessCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    service_type: ServiceType
    location: Location
    is_open: bool = True
    description: str | None = None
    email: str | None = None
    phone_numbers: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    is_verified: bool = False

    # rating/review_count are derived and never accepted from callers.
    model_config = ConfigDict(extra="forbid")


class BusinessUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    service_type: ServiceType | None = None
    location: Location | None = None
    is_open: bool | None = None
    description: str | None = None
    email: str | None = None
    phone_numbers: list[str] | None = None
    services: list[str] | None = None
    images: list[str] | None = None
    is_verified: bool | None = None

    model_config = ConfigDict(extra="forbid")


class Business(BaseModel):
    id: str | None = None
    name: str
    service_type: ServiceType
    location: Location
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    review_count: int = Field(default=0, ge=0)
    is_open: bool = True
    owner_id: str
    description: str | None = None
    email: str | None = None
    phone_numbers: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    is_verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> dict[str, Any]:
        payload = self.model_dump(mode="python", exclude={"id", "location"})
        payload["service_type"] = self.service_type.value
        payload["location"] = self.location.to_document()
        return payload
