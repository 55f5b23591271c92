from fastapi import APIRouter, Depends, HTTPException, Query, status

from pet_directory.auth import UserIdentity, identify
from pet_directory.errors import Forbidden, InvalidQuery
from pet_directory.models.business import BusinessCreate, BusinessUpdate, Point, ServiceType
from pet_directory.models.search import SearchFilters
from pet_directory.services.business_service import BusinessService
from pet_directory.services.search_service import BusinessSearchService

router = APIRouter(prefix="/businesses")


def _parse_location(value: str | None) -> Point | None:
    """Parse the ``lat,lng`` query value used by the mobile client."""
    if value is None or not value.strip():
        return None
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        raise InvalidQuery("Invalid location. Expected 'lat,lng'.")
    try:
        latitude, longitude = float(parts[0]), float(parts[1])
    except ValueError as exc:
        raise InvalidQuery("Invalid location. Latitude and longitude must be numbers.") from exc
    try:
        return Point(longitude=longitude, latitude=latitude)
    except ValueError as exc:
        raise InvalidQuery("Invalid location. Coordinates are out of range.") from exc


@router.get("", tags=["Business"])
async def search_businesses(
    service_type: ServiceType | None = Query(default=None),
    is_open: bool | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    location: str | None = Query(default=None, description="lat,lng"),
    radius_km: float | None = Query(default=None),
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    _: UserIdentity = Depends(identify),
) -> dict:
    try:
        filters = SearchFilters(
            service_type=service_type,
            is_open=is_open,
            search=search,
            center=_parse_location(location),
            radius_km=radius_km,
        )
        service = BusinessSearchService()
        return await service.search_businesses(filters, offset=offset, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/me", tags=["Business"])
async def list_my_businesses(user: UserIdentity = Depends(identify)) -> dict:
    try:
        service = BusinessService()
        return await service.list_owned_businesses(owner_id=user.user_id)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.post("", status_code=status.HTTP_201_CREATED, tags=["Business"])
async def create_business(payload: BusinessCreate, user: UserIdentity = Depends(identify)) -> dict:
    try:
        service = BusinessService()
        return await service.create_business(owner_id=user.user_id, payload=payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/{business_id}", tags=["Business"])
async def get_business(business_id: str, _: UserIdentity = Depends(identify)) -> dict:
    try:
        service = BusinessService()
        return await service.get_business(business_id=business_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.put("/{business_id}", tags=["Business"])
async def update_business(
    business_id: str,
    payload: BusinessUpdate,
    user: UserIdentity = Depends(identify),
) -> dict:
    try:
        service = BusinessService()
        return await service.update_business(business_id=business_id, owner_id=user.user_id, patch=payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Forbidden as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.delete("/{business_id}", tags=["Business"])
async def delete_business(business_id: str, user: UserIdentity = Depends(identify)) -> dict:
    try:
        service = BusinessService()
        return await service.delete_business(business_id=business_id, owner_id=user.user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Forbidden as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
