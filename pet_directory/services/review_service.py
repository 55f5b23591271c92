from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo import DESCENDING, ReturnDocument

from pet_directory.config import settings
from pet_directory.database import (
    BUSINESSES_COLLECTION,
    REVIEWS_COLLECTION,
    get_database,
    translate_store_errors,
)
from pet_directory.errors import Forbidden, InvalidQuery, NotFound, StoreUnavailable
from pet_directory.models.review import MAX_RATING, MIN_RATING, Review, ReviewUpdate
from pet_directory.services.rating_aggregator import RatingAggregator
from pet_directory.services.serializers import (
    parse_object_id,
    sanitize_response_payload,
    serialize_review_doc,
)

LOGGER = logging.getLogger("review_service")


class ReviewMutationService:
    """Review writes, each followed by a synchronous aggregate recompute.

    Validation and ownership checks run before any write. Once the review
    write commits it is the fact of record: a failing recompute is logged and
    reported as a missing ``business_summary``, never rolled back.
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase | None = None,
        *,
        aggregator: RatingAggregator | None = None,
    ) -> None:
        self._database = database if database is not None else get_database()
        self.aggregator = aggregator or RatingAggregator(self._database)

    async def create_review(
        self,
        business_id: str,
        user_id: str,
        rating: int,
        comment: str = "",
    ) -> dict:
        rating_value = self._validate_rating(rating)
        comment_value = self._clean_comment(comment)
        parsed_business_id = parse_object_id(business_id, field_name="business_id")
        business_key = str(parsed_business_id)
        businesses = self._database[BUSINESSES_COLLECTION]
        reviews = self._database[REVIEWS_COLLECTION]

        with translate_store_errors("business lookup"):
            business_exists = await businesses.count_documents({"_id": parsed_business_id}, limit=1)
        if business_exists == 0:
            raise NotFound(f"Business '{business_id}' not found.")

        review_model = Review(
            business_id=business_key,
            user_id=str(user_id),
            rating=rating_value,
            comment=comment_value,
        )
        review_doc = review_model.model_dump(mode="python", exclude={"id"})
        with translate_store_errors("review insert"):
            inserted = await reviews.insert_one(review_doc)
        review_doc["_id"] = inserted.inserted_id
        LOGGER.info("Review %s created business=%s user=%s", inserted.inserted_id, business_key, user_id)

        business_summary = await self._refresh_summary(business_key)
        payload = {
            "review": serialize_review_doc(review_doc),
            "business_summary": business_summary,
        }
        return sanitize_response_payload(payload)

    async def update_review(
        self,
        review_id: str,
        user_id: str,
        patch: ReviewUpdate | Mapping[str, Any],
        *,
        business_id: str | None = None,
    ) -> dict:
        review_patch = self._coerce_patch(patch)
        review_doc = await self._load_owned_review(review_id, user_id, business_id=business_id)

        changes = review_patch.model_dump(exclude_unset=True, exclude_none=True)
        if "comment" in changes:
            changes["comment"] = self._clean_comment(changes["comment"])
        changes["updated_at"] = datetime.now(timezone.utc)

        reviews = self._database[REVIEWS_COLLECTION]
        with translate_store_errors("review update"):
            updated_doc = await reviews.find_one_and_update(
                {"_id": review_doc["_id"]},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        if updated_doc is None:
            raise NotFound(f"Review '{review_id}' not found.")
        LOGGER.info("Review %s updated user=%s fields=%s", review_id, user_id, sorted(changes))

        business_summary = await self._refresh_summary(str(updated_doc["business_id"]))
        payload = {
            "review": serialize_review_doc(updated_doc),
            "business_summary": business_summary,
        }
        return sanitize_response_payload(payload)

    async def delete_review(
        self,
        review_id: str,
        user_id: str,
        *,
        business_id: str | None = None,
    ) -> dict:
        review_doc = await self._load_owned_review(review_id, user_id, business_id=business_id)

        reviews = self._database[REVIEWS_COLLECTION]
        with translate_store_errors("review delete"):
            result = await reviews.delete_one({"_id": review_doc["_id"]})
        if result.deleted_count == 0:
            raise NotFound(f"Review '{review_id}' not found.")
        LOGGER.info("Review %s deleted user=%s", review_id, user_id)

        business_summary = await self._refresh_summary(str(review_doc["business_id"]))
        payload = {
            "review_id": str(review_doc["_id"]),
            "message": "Review deleted successfully.",
            "business_summary": business_summary,
        }
        return sanitize_response_payload(payload)

    async def list_business_reviews(
        self,
        business_id: str,
        *,
        offset: int = 0,
        limit: int = 20,
    ) -> dict:
        parsed_business_id = parse_object_id(business_id, field_name="business_id")
        offset_value, limit_value = self._coerce_pagination(
            offset=offset,
            limit=limit,
            max_limit=settings.reviews_page_max_size,
        )
        businesses = self._database[BUSINESSES_COLLECTION]
        reviews = self._database[REVIEWS_COLLECTION]

        with translate_store_errors("review listing"):
            business_exists = await businesses.count_documents({"_id": parsed_business_id}, limit=1)
            if business_exists == 0:
                raise NotFound(f"Business '{business_id}' not found.")

            query = {"business_id": str(parsed_business_id)}
            total = await reviews.count_documents(query)
            docs = (
                await reviews.find(query)
                .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
                .skip(offset_value)
                .limit(limit_value)
                .to_list(length=limit_value)
            )

        payload = {
            "business_id": str(parsed_business_id),
            "reviews": [serialize_review_doc(doc) for doc in docs],
            "pagination": {
                "total": total,
                "limit": limit_value,
                "offset": offset_value,
                "has_more": total > offset_value + limit_value,
            },
        }
        return sanitize_response_payload(payload)

    async def _load_owned_review(
        self,
        review_id: str,
        user_id: str,
        *,
        business_id: str | None,
    ) -> dict[str, Any]:
        parsed_review_id = parse_object_id(review_id, field_name="review_id")
        business_key = None
        if business_id is not None:
            business_key = str(parse_object_id(business_id, field_name="business_id"))
        reviews = self._database[REVIEWS_COLLECTION]

        with translate_store_errors("review lookup"):
            review_doc = await reviews.find_one({"_id": parsed_review_id})
        if review_doc is None:
            raise NotFound(f"Review '{review_id}' not found.")
        if business_key is not None and str(review_doc.get("business_id")) != business_key:
            raise NotFound(f"Review '{review_id}' not found for business '{business_id}'.")
        if str(review_doc.get("user_id")) != str(user_id):
            raise Forbidden("Only the author of a review can modify it.")
        return review_doc

    async def _refresh_summary(self, business_id: str) -> dict[str, Any] | None:
        try:
            summary = await self.aggregator.recompute(business_id)
        except StoreUnavailable:
            LOGGER.exception("Rating recompute failed for business=%s; review write kept", business_id)
            return None
        return summary.model_dump(mode="python")

    def _validate_rating(self, rating: Any) -> int:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValueError(f"Invalid rating. It must be an integer between {MIN_RATING} and {MAX_RATING}.")
        if rating < MIN_RATING or rating > MAX_RATING:
            raise ValueError(f"Invalid rating. It must be between {MIN_RATING} and {MAX_RATING}.")
        return rating

    def _clean_comment(self, comment: Any) -> str:
        return str(comment or "").strip()

    def _coerce_patch(self, patch: ReviewUpdate | Mapping[str, Any]) -> ReviewUpdate:
        if isinstance(patch, ReviewUpdate):
            return patch
        try:
            return ReviewUpdate.model_validate(dict(patch))
        except ValidationError as exc:
            raise ValueError(f"Invalid review update: {exc.errors(include_url=False)}") from exc

    def _coerce_pagination(self, *, offset: int, limit: int, max_limit: int) -> tuple[int, int]:
        try:
            offset_value = int(offset)
            limit_value = int(limit)
        except (TypeError, ValueError) as exc:
            raise InvalidQuery("Invalid pagination. offset and limit must be integers.") from exc

        if offset_value < 0:
            raise InvalidQuery("Invalid offset. It must be >= 0.")
        if limit_value < 1:
            raise InvalidQuery("Invalid limit. It must be >= 1.")
        return offset_value, min(limit_value, max_limit)
