import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from craftmatch.common.pagination import PaginationMeta


class CreateReviewCommand(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)


class ReviewCategory(BaseModel):
    name: str


class ReviewProject(BaseModel):
    id: uuid.UUID
    category: ReviewCategory


class Reviewer(BaseModel):
    id: uuid.UUID
    name: str


class ReviewDTO(BaseModel):
    id: uuid.UUID
    project: ReviewProject
    reviewer: Reviewer
    rating: int
    comment: str | None
    created_at: datetime


class RatingSummary(BaseModel):
    average_rating: float | None = None
    total_reviews: int = 0


class ReviewSummary(BaseModel):
    average_rating: float
    total_reviews: int
    rating_distribution: dict[str, int]


class ArtisanReviewsResponse(BaseModel):
    data: list[ReviewDTO]
    pagination: PaginationMeta
    summary: ReviewSummary
