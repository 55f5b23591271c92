from pet_directory.models.business import (
    Business,
    BusinessCreate,
    BusinessSummary,
    BusinessUpdate,
    Location,
    Point,
    ServiceType,
)
from pet_directory.models.review import Review, ReviewCreate, ReviewUpdate
from pet_directory.models.search import SearchFilters

__all__ = [
    "Business",
    "BusinessCreate",
    "BusinessSummary",
    "BusinessUpdate",
    "Location",
    "Point",
    "Review",
    "ReviewCreate",
    "ReviewUpdate",
    "SearchFilters",
    "ServiceType",
]
