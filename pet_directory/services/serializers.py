from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from pet_directory.errors import InvalidQuery
from pet_directory.models.business import Point


def parse_object_id(value: str, *, field_name: str) -> ObjectId:
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError) as exc:
        raise InvalidQuery(f"Invalid {field_name}. Expected a Mongo ObjectId string.") from exc


def serialize_location(location: Any) -> dict[str, Any] | None:
    if not isinstance(location, dict):
        return None
    try:
        point = Point.from_geojson(location.get("coordinates"))
    except ValueError:
        coordinates = None
    else:
        coordinates = {"longitude": point.longitude, "latitude": point.latitude}
    return {
        "address": str(location.get("address", "") or ""),
        "coordinates": coordinates,
    }


def serialize_business_doc(business_doc: dict[str, Any]) -> dict[str, Any]:
    review_count_raw = business_doc.get("review_count", 0)
    try:
        review_count = max(0, int(review_count_raw))
    except (TypeError, ValueError):
        review_count = 0

    return {
        "business_id": str(business_doc.get("_id")),
        "name": str(business_doc.get("name", "") or ""),
        "service_type": business_doc.get("service_type"),
        "location": serialize_location(business_doc.get("location")),
        "rating": float(business_doc.get("rating", 0.0) or 0.0),
        "review_count": review_count,
        "is_open": bool(business_doc.get("is_open", False)),
        "owner_id": str(business_doc.get("owner_id", "") or ""),
        "description": business_doc.get("description"),
        "email": business_doc.get("email"),
        "phone_numbers": list(business_doc.get("phone_numbers") or []),
        "services": list(business_doc.get("services") or []),
        "images": list(business_doc.get("images") or []),
        "is_verified": bool(business_doc.get("is_verified", False)),
        "created_at": business_doc.get("created_at"),
        "updated_at": business_doc.get("updated_at"),
    }


def serialize_review_doc(review_doc: dict[str, Any]) -> dict[str, Any]:
    payload = dict(review_doc)
    payload["review_id"] = str(payload.pop("_id"))
    return payload


def sanitize_response_payload(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: sanitize_response_payload(item) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize_response_payload(item) for item in value]
    return value
