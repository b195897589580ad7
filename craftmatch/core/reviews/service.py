import uuid

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.common.enums import ProjectStatus
from craftmatch.common.exceptions import CraftMatchException
from craftmatch.common.logging import get_logger
from craftmatch.common.pagination import PaginationMeta, PaginationParams
from craftmatch.core.reviews.schemas import (
    ArtisanReviewsResponse,
    CreateReviewCommand,
    RatingSummary,
    ReviewCategory,
    ReviewDTO,
    Reviewer,
    ReviewProject,
    ReviewSummary,
)
from craftmatch.db.models.artisan import ArtisanProfile
from craftmatch.db.models.dictionary import Category
from craftmatch.db.models.project import Project
from craftmatch.db.models.proposal import Proposal
from craftmatch.db.models.review import Review
from craftmatch.db.models.user import User

logger = get_logger("reviews.service")

RATINGS = (5, 4, 3, 2, 1)


class ReviewError(CraftMatchException):
    pass


def display_name(email: str | None) -> str:
    if not email:
        return "User"
    return email.split("@", 1)[0]


async def rating_summaries(db: AsyncSession, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, RatingSummary]:
    """Average rating (2 dp) and review count received by each user."""
    if not user_ids:
        return {}
    result = await db.execute(
        select(Review.reviewee_id, func.avg(Review.rating), func.count(Review.id))
        .where(Review.reviewee_id.in_(user_ids))
        .group_by(Review.reviewee_id)
    )
    return {
        reviewee_id: RatingSummary(
            average_rating=round(float(avg), 2) if avg is not None else None,
            total_reviews=count,
        )
        for reviewee_id, avg, count in result.all()
    }


async def rating_summary(db: AsyncSession, user_id: uuid.UUID) -> RatingSummary:
    summaries = await rating_summaries(db, [user_id])
    return summaries.get(user_id, RatingSummary())


class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_review(
        self, project_id: uuid.UUID, reviewer: User, command: CreateReviewCommand
    ) -> ReviewDTO:
        """Rate the other party of a completed project, once per reviewer."""
        project = await self.db.get(Project, project_id)
        if not project:
            raise ReviewError("Project not found", "PROJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        if project.status != ProjectStatus.COMPLETED.value:
            raise ReviewError(
                "Only completed projects can be reviewed", "PROJECT_NOT_COMPLETED", status.HTTP_400_BAD_REQUEST
            )

        artisan_id: uuid.UUID | None = None
        if project.accepted_proposal_id:
            accepted = await self.db.get(Proposal, project.accepted_proposal_id)
            artisan_id = accepted.artisan_id if accepted else None

        is_client = reviewer.id == project.client_id
        is_artisan = artisan_id is not None and reviewer.id == artisan_id
        if not is_client and not is_artisan:
            raise ReviewError(
                "You are not allowed to review this project", "REVIEW_FORBIDDEN", status.HTTP_403_FORBIDDEN
            )

        existing = await self.db.execute(
            select(Review.id).where(Review.project_id == project_id, Review.reviewer_id == reviewer.id)
        )
        if existing.first():
            raise ReviewError(
                "You have already reviewed this project", "REVIEW_ALREADY_EXISTS", status.HTTP_409_CONFLICT
            )

        reviewee_id = artisan_id if is_client else project.client_id
        if reviewee_id is None:
            raise ReviewError(
                "Cannot determine who is being reviewed", "REVIEWEE_NOT_FOUND", status.HTTP_400_BAD_REQUEST
            )

        review = Review(
            project_id=project_id,
            reviewer_id=reviewer.id,
            reviewee_id=reviewee_id,
            rating=command.rating,
            comment=command.comment or None,
        )
        self.db.add(review)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ReviewError(
                "You have already reviewed this project", "REVIEW_ALREADY_EXISTS", status.HTTP_409_CONFLICT
            ) from e
        await self.db.refresh(review)

        category = await self.db.get(Category, project.category_id)
        logger.info("Review %s: %s rated %s (%d/5)", review.id, reviewer.id, reviewee_id, review.rating)

        return ReviewDTO(
            id=review.id,
            project=ReviewProject(id=project.id, category=ReviewCategory(name=category.name if category else "")),
            reviewer=Reviewer(id=reviewer.id, name=display_name(reviewer.email)),
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )

    async def get_artisan_reviews(self, artisan_id: uuid.UUID, params: PaginationParams) -> ArtisanReviewsResponse:
        if not await self.db.get(ArtisanProfile, artisan_id):
            raise ReviewError("Artisan not found", "ARTISAN_NOT_FOUND", status.HTTP_404_NOT_FOUND)

        dist_result = await self.db.execute(
            select(Review.rating, func.count(Review.id))
            .where(Review.reviewee_id == artisan_id)
            .group_by(Review.rating)
        )
        counts = {rating: count for rating, count in dist_result.all()}
        distribution = {str(r): counts.get(r, 0) for r in RATINGS}
        total = sum(counts.values())
        average = round(sum(r * c for r, c in counts.items()) / total, 2) if total else 0.0

        rows = await self.db.execute(
            select(Review, Category.name, User.email)
            .join(Project, Review.project_id == Project.id)
            .join(Category, Project.category_id == Category.id)
            .join(User, Review.reviewer_id == User.id)
            .where(Review.reviewee_id == artisan_id)
            .order_by(Review.created_at.desc(), Review.id)
            .offset(params.offset)
            .limit(params.limit)
        )
        reviews = [
            ReviewDTO(
                id=review.id,
                project=ReviewProject(id=review.project_id, category=ReviewCategory(name=category_name)),
                reviewer=Reviewer(id=review.reviewer_id, name=display_name(email)),
                rating=review.rating,
                comment=review.comment,
                created_at=review.created_at,
            )
            for review, category_name, email in rows.all()
        ]

        return ArtisanReviewsResponse(
            data=reviews,
            pagination=PaginationMeta.build(params, total),
            summary=ReviewSummary(
                average_rating=average,
                total_reviews=total,
                rating_distribution=distribution,
            ),
        )
