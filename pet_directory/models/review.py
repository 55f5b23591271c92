from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

MIN_RATING = 1
MAX_RATING = 5


class ReviewCreate(BaseModel):
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING, strict=True)
    comment: str = Field(default="", max_length=2000)

    model_config = ConfigDict(extra="forbid")


class ReviewUpdate(BaseModel):
    rating: int | None = Field(default=None, ge=MIN_RATING, le=MAX_RATING, strict=True)
    comment: str | None = Field(default=None, max_length=2000)

    model_config = ConfigDict(extra="forbid")


class Review(BaseModel):
    id: str | None = None
    business_id: str
    user_id: str
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    comment: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
