"""Caller identification for mutating and listing routes.

Tokens are verified by the identity provider in front of this service; the
bearer credential that reaches us is the provider subject, which is resolved
to a stored user through ``users.auth_uid``.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from pet_directory.database import USERS_COLLECTION, get_database, translate_store_errors
from pet_directory.errors import Unauthorized

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class UserIdentity:
    user_id: str
    auth_uid: str


async def resolve_identity(database: AsyncIOMotorDatabase, token: str | None) -> UserIdentity:
    auth_uid = str(token or "").strip()
    if not auth_uid:
        raise Unauthorized("Missing bearer token.")

    with translate_store_errors("user lookup"):
        user_doc = await database[USERS_COLLECTION].find_one({"auth_uid": auth_uid}, {"_id": 1})
    if user_doc is None:
        raise Unauthorized("Unknown user.")
    return UserIdentity(user_id=str(user_doc["_id"]), auth_uid=auth_uid)


async def identify(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UserIdentity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await resolve_identity(get_database(), credentials.credentials)
    except Unauthorized as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
