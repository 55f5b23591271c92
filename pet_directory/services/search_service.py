from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from pet_directory.config import settings
from pet_directory.database import BUSINESSES_COLLECTION, get_database, translate_store_errors
from pet_directory.errors import InvalidQuery
from pet_directory.geo import km_to_radians
from pet_directory.models.search import SearchFilters
from pet_directory.services.proximity_ranker import ProximityRanker
from pet_directory.services.query_builder import LOCATION_FIELD, QueryBuilder, QueryPlan
from pet_directory.services.serializers import sanitize_response_payload

LOGGER = logging.getLogger("business_search")

# MongoDB measures spherical $geoNear distances on a 6378.1 km sphere.
STORE_METERS_PER_RADIAN = 6378100.0


class BusinessSearchService:
    _STORE_ORDER = [("_id", ASCENDING)]

    def __init__(
        self,
        database: AsyncIOMotorDatabase | None = None,
        *,
        query_builder: QueryBuilder | None = None,
        ranker: ProximityRanker | None = None,
        max_limit: int | None = None,
        max_candidates: int | None = None,
    ) -> None:
        self._database = database if database is not None else get_database()
        self.query_builder = query_builder or QueryBuilder()
        self.ranker = ranker or ProximityRanker()
        self._max_limit = max_limit if max_limit is not None else settings.search_max_limit
        self._max_candidates = max_candidates if max_candidates is not None else settings.search_max_candidates

    async def search_businesses(
        self,
        filters: SearchFilters | Mapping[str, Any] | None = None,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> dict:
        offset_value, limit_value = self._coerce_pagination(offset=offset, limit=limit)
        plan = self.query_builder.build(filters)
        businesses = self._database[BUSINESSES_COLLECTION]

        with translate_store_errors("business count"):
            total = await businesses.count_documents(plan.filter)

        candidates: list[dict[str, Any]] = []
        window_offset = 0
        if offset_value < total:
            if plan.is_proximity and total <= self._max_candidates:
                # Distance order is global, so the whole radius is fetched before slicing.
                with translate_store_errors("business proximity fetch"):
                    candidates = (
                        await businesses.find(plan.filter)
                        .sort(self._STORE_ORDER)
                        .to_list(length=self._max_candidates)
                    )
            elif plan.is_proximity:
                LOGGER.info(
                    "Proximity search matched %s businesses (cap %s); paging in store distance order",
                    total,
                    self._max_candidates,
                )
                window_offset = offset_value
                with translate_store_errors("business nearest fetch"):
                    candidates = (
                        await businesses.aggregate(self._nearest_pipeline(plan, offset_value, limit_value))
                        .to_list(length=limit_value)
                    )
            else:
                window_offset = offset_value
                with translate_store_errors("business fetch"):
                    candidates = (
                        await businesses.find(plan.filter)
                        .sort(self._STORE_ORDER)
                        .skip(offset_value)
                        .limit(limit_value)
                        .to_list(length=limit_value)
                    )

        ranked = self.ranker.rank(candidates, plan.center)
        items, has_more = self.ranker.page(
            ranked,
            offset=offset_value,
            limit=limit_value,
            total=total,
            window_offset=window_offset,
        )

        payload = {
            "results": items,
            "pagination": {
                "total": total,
                "limit": limit_value,
                "offset": offset_value,
                "has_more": has_more,
            },
        }
        return sanitize_response_payload(payload)

    def _nearest_pipeline(self, plan: QueryPlan, offset: int, limit: int) -> list[dict[str, Any]]:
        center = plan.center
        return [
            {
                "$geoNear": {
                    "near": center.to_geojson(),
                    "key": LOCATION_FIELD,
                    "distanceField": "store_distance_m",
                    # Same spherical cap as the $centerSphere count filter.
                    "maxDistance": km_to_radians(plan.radius_km) * STORE_METERS_PER_RADIAN,
                    "spherical": True,
                    "query": plan.predicates,
                }
            },
            {"$skip": offset},
            {"$limit": limit},
        ]

    def _coerce_pagination(self, *, offset: int, limit: int | None) -> tuple[int, int]:
        try:
            offset_value = int(offset)
        except (TypeError, ValueError) as exc:
            raise InvalidQuery("Invalid offset. It must be an integer >= 0.") from exc

        if limit is None:
            limit_value = settings.search_default_limit
        else:
            try:
                limit_value = int(limit)
            except (TypeError, ValueError) as exc:
                raise InvalidQuery("Invalid limit. It must be an integer >= 1.") from exc

        if offset_value < 0:
            raise InvalidQuery("Invalid offset. It must be >= 0.")
        if limit_value < 1:
            raise InvalidQuery("Invalid limit. It must be >= 1.")
        return offset_value, min(limit_value, self._max_limit)
