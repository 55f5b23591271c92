from __future__ import annotations

import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase

from pet_directory.database import (
    BUSINESSES_COLLECTION,
    REVIEWS_COLLECTION,
    get_database,
    translate_store_errors,
)
from pet_directory.models.business import BusinessSummary
from pet_directory.services.serializers import parse_object_id

LOGGER = logging.getLogger("rating_aggregator")


class RatingAggregator:
    """Sole writer of a business's ``rating`` and ``review_count``.

    Each call rescans every review of the business and writes both fields in
    one update. No deltas are applied.
    """

    def __init__(self, database: AsyncIOMotorDatabase | None = None) -> None:
        self._database = database if database is not None else get_database()

    async def recompute(self, business_id: str) -> BusinessSummary:
        parsed_business_id = parse_object_id(business_id, field_name="business_id")
        businesses = self._database[BUSINESSES_COLLECTION]
        reviews = self._database[REVIEWS_COLLECTION]

        pipeline = [
            {"$match": {"business_id": str(parsed_business_id)}},
            {
                "$group": {
                    "_id": None,
                    "avg_rating": {"$avg": "$rating"},
                    "count": {"$sum": 1},
                }
            },
        ]
        with translate_store_errors("rating aggregation"):
            stats = await reviews.aggregate(pipeline).to_list(length=1)

        summary = self._summary_from_stats(stats)

        with translate_store_errors("rating update"):
            result = await businesses.update_one(
                {"_id": parsed_business_id},
                {
                    "$set": {
                        "rating": summary.rating,
                        "review_count": summary.review_count,
                        "rating_updated_at": datetime.now(timezone.utc),
                    }
                },
            )

        if result.matched_count == 0:
            LOGGER.info("Business %s no longer exists; rating update skipped", business_id)
        else:
            LOGGER.debug(
                "Recomputed business=%s rating=%s review_count=%s",
                business_id,
                summary.rating,
                summary.review_count,
            )
        return summary

    def _summary_from_stats(self, stats: list[dict]) -> BusinessSummary:
        if not stats:
            return BusinessSummary(rating=0.0, review_count=0)

        count = int(stats[0].get("count", 0) or 0)
        avg_rating = stats[0].get("avg_rating")
        if count == 0 or avg_rating is None:
            return BusinessSummary(rating=0.0, review_count=0)
        return BusinessSummary(rating=round(float(avg_rating), 2), review_count=count)
