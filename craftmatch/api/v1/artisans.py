import uuid

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.api.deps import get_db, require_role
from craftmatch.common.enums import UserRole
from craftmatch.common.pagination import PaginationParams
from craftmatch.common.uploads import read_upload
from craftmatch.core.artisans.schemas import (
    AddSpecializationsCommand,
    ArtisanProfileDTO,
    PortfolioImageDTO,
    SpecializationDTO,
    UpsertArtisanProfileCommand,
)
from craftmatch.core.artisans.service import ArtisanProfileService
from craftmatch.core.reviews.schemas import ArtisanReviewsResponse
from craftmatch.core.reviews.service import ReviewService
from craftmatch.db.models.user import User

router = APIRouter(prefix="/artisans", tags=["Artisans"])

artisan_only = require_role(UserRole.ARTISAN)


# ---------- Own profile ----------


@router.get("/me", response_model=ArtisanProfileDTO)
async def get_my_profile(
    current_user: User = Depends(artisan_only),
    db: AsyncSession = Depends(get_db),
):
    return await ArtisanProfileService(db).get_profile(current_user.id)


@router.put("/me", response_model=ArtisanProfileDTO)
async def upsert_my_profile(
    body: UpsertArtisanProfileCommand,
    current_user: User = Depends(artisan_only),
    db: AsyncSession = Depends(get_db),
):
    return await ArtisanProfileService(db).upsert_profile(body, current_user.id)


@router.post("/me/specializations", response_model=list[SpecializationDTO], status_code=201)
async def add_specializations(
    body: AddSpecializationsCommand,
    current_user: User = Depends(artisan_only),
    db: AsyncSession = Depends(get_db),
):
    return await ArtisanProfileService(db).add_specializations(body.specialization_ids, current_user.id)


@router.delete("/me/specializations/{specialization_id}", status_code=204)
async def remove_specialization(
    specialization_id: uuid.UUID,
    current_user: User = Depends(artisan_only),
    db: AsyncSession = Depends(get_db),
):
    await ArtisanProfileService(db).remove_specialization(specialization_id, current_user.id)


@router.post("/me/portfolio", response_model=PortfolioImageDTO, status_code=201)
async def upload_portfolio_image(
    image: UploadFile = File(...),
    current_user: User = Depends(artisan_only),
    db: AsyncSession = Depends(get_db),
):
    return await ArtisanProfileService(db).upload_portfolio_image(await read_upload(image), current_user.id)


@router.delete("/me/portfolio/{image_id}", status_code=204)
async def delete_portfolio_image(
    image_id: uuid.UUID,
    current_user: User = Depends(artisan_only),
    db: AsyncSession = Depends(get_db),
):
    await ArtisanProfileService(db).delete_portfolio_image(image_id, current_user.id)


# ---------- Public ----------


@router.get("/{artisan_id}", response_model=ArtisanProfileDTO)
async def get_public_profile(artisan_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await ArtisanProfileService(db).get_public_profile(artisan_id)


@router.get("/{artisan_id}/reviews", response_model=ArtisanReviewsResponse)
async def get_artisan_reviews(
    artisan_id: uuid.UUID,
    params: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService(db).get_artisan_reviews(artisan_id, params)
