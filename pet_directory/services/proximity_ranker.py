from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pet_directory.geo import distance_km
from pet_directory.models.business import Point
from pet_directory.services.serializers import serialize_business_doc


class ProximityRanker:
    """Turns store candidates into ordered search results and pages them.

    Two paths, chosen by the caller's center: distance order when a center is
    given, store arrival order otherwise. Neither path mutates the candidate
    documents.
    """

    def __init__(self, distance_precision: int = 3) -> None:
        self._distance_precision = distance_precision

    def rank(
        self,
        candidates: Sequence[Mapping[str, Any]],
        center: Point | None = None,
    ) -> list[dict[str, Any]]:
        results = [serialize_business_doc(dict(candidate)) for candidate in candidates]
        if center is None:
            return results

        measured: list[tuple[float, dict[str, Any]]] = []
        for candidate, result in zip(candidates, results):
            location = candidate.get("location") or {}
            point = Point.from_geojson(location.get("coordinates"))
            distance = distance_km(center, point)
            result["distance_km"] = round(distance, self._distance_precision)
            measured.append((distance, result))

        # sorted() is stable: equal distances keep arrival order.
        measured = sorted(measured, key=lambda item: item[0])
        return [result for _, result in measured]

    def page(
        self,
        ranked: Sequence[dict[str, Any]],
        *,
        offset: int,
        limit: int,
        total: int,
        window_offset: int = 0,
    ) -> tuple[list[dict[str, Any]], bool]:
        """Cut ``[offset, offset + limit)`` out of the ranked sequence.

        ``window_offset`` is the absolute position of ``ranked[0]``; it is
        non-zero when the store already skipped rows. ``total`` comes from a
        separate count over the same filter, never from ``len(ranked)``.
        """
        if offset < 0:
            raise ValueError("offset must be >= 0.")
        if limit < 1:
            raise ValueError("limit must be >= 1.")
        if offset < window_offset:
            raise ValueError("offset falls before the fetched window.")

        total_value = max(0, int(total))
        if offset >= total_value:
            return [], False

        start = offset - window_offset
        items = list(ranked[start : start + limit])
        return items, total_value > offset + limit
