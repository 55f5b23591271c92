"""In-memory async stand-in for the subset of the Motor API the services use."""

from __future__ import annotations

import asyncio
import copy
import math
import re
from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import ServerSelectionTimeoutError

from pet_directory.database import BUSINESSES_COLLECTION, REVIEWS_COLLECTION, USERS_COLLECTION
from pet_directory.services.search_service import STORE_METERS_PER_RADIAN

_MISSING = object()
KM_PER_DEGREE_LATITUDE = 6371.0 * math.pi / 180.0


def _get_path(doc: dict[str, Any], path: str) -> Any:
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _angular_distance(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * math.asin(math.sqrt(min(1.0, h)))


def _matches_condition(value: Any, condition: Any) -> bool:
    if not (isinstance(condition, dict) and any(str(key).startswith("$") for key in condition)):
        return (None if value is _MISSING else value) == condition

    for operator, argument in condition.items():
        if operator == "$options":
            continue
        if operator == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or re.search(argument, value, flags) is None:
                return False
        elif operator == "$geoWithin":
            (center_lng, center_lat), radius = argument["$centerSphere"]
            if not isinstance(value, dict):
                return False
            lng, lat = value["coordinates"]
            if _angular_distance(center_lng, center_lat, lng, lat) > radius:
                return False
        elif operator == "$in":
            if value not in argument:
                return False
        else:
            raise NotImplementedError(f"Unsupported operator {operator}")
    return True


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    return all(_matches_condition(_get_path(doc, key), condition) for key, condition in query.items())


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (value is _MISSING or value is None, None if value is _MISSING else value)


def _group(docs: list[dict[str, Any]], spec: dict[str, Any]) -> list[dict[str, Any]]:
    groups: dict[Any, list[dict[str, Any]]] = {}
    key_expr = spec["_id"]
    for doc in docs:
        key = _get_path(doc, key_expr[1:]) if isinstance(key_expr, str) else key_expr
        groups.setdefault(key, []).append(doc)

    results = []
    for key, members in groups.items():
        row: dict[str, Any] = {"_id": key}
        for field_name, accumulator in spec.items():
            if field_name == "_id":
                continue
            (operator, argument), = accumulator.items()
            if operator == "$sum":
                if isinstance(argument, str):
                    row[field_name] = sum(_get_path(member, argument[1:]) for member in members)
                else:
                    row[field_name] = argument * len(members)
            elif operator == "$avg":
                values = [_get_path(member, argument[1:]) for member in members]
                row[field_name] = sum(values) / len(values)
            else:
                raise NotImplementedError(f"Unsupported accumulator {operator}")
        results.append(row)
    return results


def _geo_near(docs: list[dict[str, Any]], options: dict[str, Any]) -> list[dict[str, Any]]:
    center_lng, center_lat = options["near"]["coordinates"]
    max_distance = options.get("maxDistance")
    measured = []
    for doc in docs:
        point = _get_path(doc, options["key"])
        if not isinstance(point, dict) or not _matches(doc, options.get("query", {})):
            continue
        lng, lat = point["coordinates"]
        meters = _angular_distance(center_lng, center_lat, lng, lat) * STORE_METERS_PER_RADIAN
        if max_distance is not None and meters > max_distance:
            continue
        doc[options["distanceField"]] = meters
        measured.append(doc)
    return sorted(measured, key=lambda doc: doc[options["distanceField"]])


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs
        self._sort: list[tuple[str, int]] = []
        self._skip = 0
        self._limit = 0

    def sort(self, keys: list[tuple[str, int]]) -> "FakeCursor":
        self._sort = list(keys)
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        docs = list(self._docs)
        for key, direction in reversed(self._sort):
            docs.sort(key=lambda doc: _sort_key(_get_path(doc, key)), reverse=direction < 0)
        docs = docs[self._skip :]
        if self._limit:
            docs = docs[: self._limit]
        if length is not None:
            docs = docs[:length]
        return [copy.deepcopy(doc) for doc in docs]


class FakeCollection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: list[dict[str, Any]] = []
        self.failing: set[str] = set()
        self.indexes: list[Any] = []

    def _check(self, operation: str) -> None:
        if operation in self.failing or "*" in self.failing:
            raise ServerSelectionTimeoutError(f"{self.name}.{operation}: store unavailable")

    def find(self, query: dict[str, Any] | None = None, projection: Any = None) -> FakeCursor:
        self._check("find")
        return FakeCursor([doc for doc in self.docs if _matches(doc, query or {})])

    async def find_one(self, query: dict[str, Any], projection: Any = None) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self._check("find_one")
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def count_documents(self, query: dict[str, Any], limit: int = 0) -> int:
        await asyncio.sleep(0)
        self._check("count_documents")
        count = sum(1 for doc in self.docs if _matches(doc, query))
        return min(count, limit) if limit else count

    async def insert_one(self, doc: dict[str, Any]) -> SimpleNamespace:
        await asyncio.sleep(0)
        self._check("insert_one")
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        await asyncio.sleep(0)
        self._check("update_one")
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def find_one_and_update(
        self,
        query: dict[str, Any],
        update: dict[str, Any],
        return_document: bool = ReturnDocument.BEFORE,
    ) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self._check("find_one_and_update")
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                doc.update(copy.deepcopy(update.get("$set", {})))
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        return None

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        await asyncio.sleep(0)
        self._check("delete_one")
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query: dict[str, Any]) -> SimpleNamespace:
        await asyncio.sleep(0)
        self._check("delete_many")
        kept = [doc for doc in self.docs if not _matches(doc, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)

    def aggregate(self, pipeline: list[dict[str, Any]]) -> FakeCursor:
        self._check("aggregate")
        docs = [copy.deepcopy(doc) for doc in self.docs]
        for stage in pipeline:
            if "$match" in stage:
                docs = [doc for doc in docs if _matches(doc, stage["$match"])]
            elif "$group" in stage:
                docs = _group(docs, stage["$group"])
            elif "$geoNear" in stage:
                docs = _geo_near(docs, stage["$geoNear"])
            elif "$skip" in stage:
                docs = docs[stage["$skip"] :]
            elif "$limit" in stage:
                docs = docs[: stage["$limit"]]
            else:
                raise NotImplementedError(f"Unsupported stage {list(stage)}")
        return FakeCursor(docs)

    async def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return "_".join(str(key) for key, _ in keys)


class FakeDatabase:
    def __init__(self) -> None:
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


def point_north_of(longitude: float, latitude: float, distance_km: float) -> dict[str, Any]:
    """GeoJSON point ``distance_km`` due north of the given coordinates."""
    return {
        "type": "Point",
        "coordinates": [longitude, latitude + distance_km / KM_PER_DEGREE_LATITUDE],
    }


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def insert_business(database: FakeDatabase):
    async def _insert(
        name: str = "Happy Paws",
        *,
        coordinates: dict[str, Any] | None = None,
        service_type: str = "veterinarian",
        is_open: bool = True,
        owner_id: str = "owner-1",
        **extra: Any,
    ) -> str:
        doc = {
            "name": name,
            "service_type": service_type,
            "location": {
                "address": f"{name} street 1",
                "coordinates": coordinates or {"type": "Point", "coordinates": [34.78, 32.08]},
            },
            "rating": 0.0,
            "review_count": 0,
            "is_open": is_open,
            "owner_id": owner_id,
        }
        doc.update(extra)
        inserted = await database[BUSINESSES_COLLECTION].insert_one(doc)
        return str(inserted.inserted_id)

    return _insert


@pytest.fixture
def insert_user(database: FakeDatabase):
    async def _insert(auth_uid: str) -> str:
        inserted = await database[USERS_COLLECTION].insert_one({"auth_uid": auth_uid})
        return str(inserted.inserted_id)

    return _insert


@pytest.fixture
def reviews_collection(database: FakeDatabase) -> FakeCollection:
    return database[REVIEWS_COLLECTION]


@pytest.fixture
def businesses_collection(database: FakeDatabase) -> FakeCollection:
    return database[BUSINESSES_COLLECTION]
