import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.api.deps import get_current_user, get_db
from craftmatch.core.reviews.schemas import CreateReviewCommand, ReviewDTO
from craftmatch.core.reviews.service import ReviewService
from craftmatch.db.models.user import User

router = APIRouter(prefix="/projects/{project_id}/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewDTO, status_code=201)
async def create_review(
    project_id: uuid.UUID,
    body: CreateReviewCommand,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService(db).create_review(project_id, current_user, body)
