from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from pet_directory.errors import InvalidQuery
from pet_directory.geo import km_to_radians
from pet_directory.models.business import Point
from pet_directory.models.search import SearchFilters

LOCATION_FIELD = "location.coordinates"


@dataclass(frozen=True)
class QueryPlan:
    """A store filter plus the search center the ranker needs downstream.

    The same ``filter`` serves the count query and the candidate fetch, so
    ``total`` always describes the set the page is cut from.
    """

    filter: dict[str, Any] = field(default_factory=dict)
    center: Point | None = None
    radius_km: float | None = None

    @property
    def is_proximity(self) -> bool:
        return self.center is not None

    @property
    def predicates(self) -> dict[str, Any]:
        """The filter without its geo clause."""
        return {key: value for key, value in self.filter.items() if key != LOCATION_FIELD}


class QueryBuilder:
    def build(self, filters: SearchFilters | Mapping[str, Any] | None) -> QueryPlan:
        search_filters = self._coerce_filters(filters)

        has_center = search_filters.center is not None
        has_radius = search_filters.radius_km is not None
        if has_center != has_radius:
            raise InvalidQuery("Both center and radius_km must be provided for a proximity search.")

        query: dict[str, Any] = {}
        if search_filters.service_type is not None:
            query["service_type"] = search_filters.service_type.value
        if search_filters.is_open is not None:
            query["is_open"] = search_filters.is_open

        search_text = re.sub(r"\s+", " ", search_filters.search or "").strip()
        if search_text:
            query["name"] = {"$regex": re.escape(search_text), "$options": "i"}

        if not has_center:
            return QueryPlan(filter=query)

        center = search_filters.center
        radius_km = float(search_filters.radius_km)
        query[LOCATION_FIELD] = {
            "$geoWithin": {
                "$centerSphere": [[center.longitude, center.latitude], km_to_radians(radius_km)],
            }
        }
        return QueryPlan(filter=query, center=center, radius_km=radius_km)

    def _coerce_filters(self, filters: SearchFilters | Mapping[str, Any] | None) -> SearchFilters:
        if filters is None:
            return SearchFilters()
        if isinstance(filters, SearchFilters):
            return filters
        try:
            return SearchFilters.model_validate(dict(filters))
        except ValidationError as exc:
            raise InvalidQuery(f"Invalid search filters: {exc.errors(include_url=False)}") from exc
