from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError
from pymongo import ASCENDING, ReturnDocument

from pet_directory.database import (
    BUSINESSES_COLLECTION,
    REVIEWS_COLLECTION,
    get_database,
    translate_store_errors,
)
from pet_directory.errors import Forbidden, NotFound
from pet_directory.models.business import Business, BusinessCreate, BusinessUpdate
from pet_directory.services.serializers import (
    parse_object_id,
    sanitize_response_payload,
    serialize_business_doc,
)

LOGGER = logging.getLogger("business_service")


class BusinessService:
    def __init__(self, database: AsyncIOMotorDatabase | None = None) -> None:
        self._database = database if database is not None else get_database()

    async def create_business(self, owner_id: str, payload: BusinessCreate | Mapping[str, Any]) -> dict:
        business_input = self._coerce_model(BusinessCreate, payload)
        business = Business(
            owner_id=str(owner_id),
            rating=0.0,
            review_count=0,
            **business_input.model_dump(mode="python"),
        )
        business_doc = business.to_document()

        businesses = self._database[BUSINESSES_COLLECTION]
        with translate_store_errors("business insert"):
            inserted = await businesses.insert_one(business_doc)
        business_doc["_id"] = inserted.inserted_id
        LOGGER.info("Business %s created owner=%s", inserted.inserted_id, owner_id)
        return sanitize_response_payload(serialize_business_doc(business_doc))

    async def get_business(self, business_id: str) -> dict:
        business_doc = await self._load_business(business_id)
        return sanitize_response_payload(serialize_business_doc(business_doc))

    async def list_owned_businesses(self, owner_id: str) -> dict:
        businesses = self._database[BUSINESSES_COLLECTION]
        with translate_store_errors("owned business listing"):
            docs = await businesses.find({"owner_id": str(owner_id)}).sort([("_id", ASCENDING)]).to_list(length=None)

        payload = {"businesses": [serialize_business_doc(doc) for doc in docs]}
        return sanitize_response_payload(payload)

    async def update_business(
        self,
        business_id: str,
        owner_id: str,
        patch: BusinessUpdate | Mapping[str, Any],
    ) -> dict:
        business_patch = self._coerce_model(BusinessUpdate, patch)
        business_doc = await self._load_owned_business(business_id, owner_id)

        changes = business_patch.model_dump(mode="python", exclude_unset=True, exclude_none=True)
        if "service_type" in changes:
            changes["service_type"] = business_patch.service_type.value
        if "location" in changes:
            changes["location"] = business_patch.location.to_document()
        changes["updated_at"] = datetime.now(timezone.utc)

        businesses = self._database[BUSINESSES_COLLECTION]
        with translate_store_errors("business update"):
            updated_doc = await businesses.find_one_and_update(
                {"_id": business_doc["_id"]},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        if updated_doc is None:
            raise NotFound(f"Business '{business_id}' not found.")
        return sanitize_response_payload(serialize_business_doc(updated_doc))

    async def delete_business(self, business_id: str, owner_id: str) -> dict:
        business_doc = await self._load_owned_business(business_id, owner_id)
        businesses = self._database[BUSINESSES_COLLECTION]
        reviews = self._database[REVIEWS_COLLECTION]

        # Business first: a recompute racing the cascade finds nothing to update.
        with translate_store_errors("business delete"):
            await businesses.delete_one({"_id": business_doc["_id"]})
            deleted_reviews = await reviews.delete_many({"business_id": str(business_doc["_id"])})

        LOGGER.info(
            "Business %s deleted owner=%s reviews_removed=%s",
            business_id,
            owner_id,
            deleted_reviews.deleted_count,
        )
        return {
            "business_id": str(business_doc["_id"]),
            "message": "Business deleted successfully.",
            "deleted_reviews": deleted_reviews.deleted_count,
        }

    async def _load_business(self, business_id: str) -> dict[str, Any]:
        parsed_id = parse_object_id(business_id, field_name="business_id")
        businesses = self._database[BUSINESSES_COLLECTION]
        with translate_store_errors("business lookup"):
            business_doc = await businesses.find_one({"_id": parsed_id})
        if business_doc is None:
            raise NotFound(f"Business '{business_id}' not found.")
        return business_doc

    async def _load_owned_business(self, business_id: str, owner_id: str) -> dict[str, Any]:
        business_doc = await self._load_business(business_id)
        if str(business_doc.get("owner_id")) != str(owner_id):
            raise Forbidden("Only the owner of a business can modify it.")
        return business_doc

    def _coerce_model(self, model_type: type[BaseModel], payload: Any) -> Any:
        if isinstance(payload, model_type):
            return payload
        try:
            return model_type.model_validate(dict(payload))
        except ValidationError as exc:
            raise ValueError(f"Invalid business payload: {exc.errors(include_url=False)}") from exc
