import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.api.deps import client_ip, get_current_user, get_db
from craftmatch.common.pagination import PaginationParams
from craftmatch.core.images.schemas import (
    GeneratedImageDTO,
    GeneratedImagesListResponse,
    GenerateImageCommand,
    GenerateImageResponse,
)
from craftmatch.core.images.service import GeneratedImageService
from craftmatch.db.models.user import User

router = APIRouter(prefix="/images", tags=["Images"])


@router.post("/generate", response_model=GenerateImageResponse, status_code=201)
async def generate_image(
    body: GenerateImageCommand,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GeneratedImageService(db).generate(current_user, body, client_ip(request))


@router.get("/generated", response_model=GeneratedImagesListResponse)
async def list_generated_images(
    unused_only: bool = Query(False, description="Only images not yet used by a project"),
    params: PaginationParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GeneratedImageService(db).list_images(current_user.id, params, unused_only)


@router.get("/generated/{image_id}", response_model=GeneratedImageDTO)
async def get_generated_image(
    image_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GeneratedImageService(db).get_image(image_id, current_user.id)


@router.delete("/generated/{image_id}", status_code=204)
async def delete_generated_image(
    image_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await GeneratedImageService(db).delete_image(image_id, current_user.id)
