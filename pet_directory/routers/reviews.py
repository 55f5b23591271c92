from fastapi import APIRouter, Depends, HTTPException, Query, status

from pet_directory.auth import UserIdentity, identify
from pet_directory.errors import Forbidden
from pet_directory.models.review import ReviewCreate, ReviewUpdate
from pet_directory.services.review_service import ReviewMutationService

router = APIRouter(prefix="/businesses/{business_id}/reviews", tags=["Reviews"])


@router.get("")
async def list_business_reviews(
    business_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: UserIdentity = Depends(identify),
) -> dict:
    try:
        service = ReviewMutationService()
        return await service.list_business_reviews(business_id, offset=offset, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_review(
    business_id: str,
    payload: ReviewCreate,
    user: UserIdentity = Depends(identify),
) -> dict:
    try:
        service = ReviewMutationService()
        return await service.create_review(
            business_id=business_id,
            user_id=user.user_id,
            rating=payload.rating,
            comment=payload.comment,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.put("/{review_id}")
async def update_review(
    business_id: str,
    review_id: str,
    payload: ReviewUpdate,
    user: UserIdentity = Depends(identify),
) -> dict:
    try:
        service = ReviewMutationService()
        return await service.update_review(
            review_id=review_id,
            user_id=user.user_id,
            patch=payload,
            business_id=business_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Forbidden as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.delete("/{review_id}")
async def delete_review(
    business_id: str,
    review_id: str,
    user: UserIdentity = Depends(identify),
) -> dict:
    try:
        service = ReviewMutationService()
        return await service.delete_review(
            review_id=review_id,
            user_id=user.user_id,
            business_id=business_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Forbidden as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
