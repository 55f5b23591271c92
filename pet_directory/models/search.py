from pydantic import BaseModel, ConfigDict, Field

from pet_directory.models.business import Point, ServiceType


class SearchFilters(BaseModel):
    """Every option the business search understands.

    ``center`` and ``radius_km`` travel together; the pairing is checked by
    the query builder so the caller gets ``InvalidQuery`` rather than a
    generic validation error.
    """

    service_type: ServiceType | None = None
    is_open: bool | None = None
    search: str | None = Field(default=None, max_length=200)
    center: Point | None = None
    radius_km: float | None = Field(default=None, gt=0.0)

    model_config = ConfigDict(extra="forbid", frozen=True)
