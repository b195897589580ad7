import uuid

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.common.enums import StorageBucket, UserRole
from craftmatch.common.exceptions import CraftMatchException
from craftmatch.common.logging import get_logger
from craftmatch.common.pagination import PaginationMeta, PaginationParams, paginate
from craftmatch.common.rate_limit import FixedWindowRateLimiter, image_generation_limiter
from craftmatch.config import settings
from craftmatch.core.images import prompt_engineer
from craftmatch.core.images.schemas import (
    GeneratedImageDTO,
    GeneratedImagesListResponse,
    GenerateImageCommand,
    GenerateImageResponse,
)
from craftmatch.db.models.generated_image import GeneratedImage
from craftmatch.db.models.project import Project
from craftmatch.db.models.user import User
from craftmatch.integrations.ai_client import AIClient, AIClientError, get_ai_client
from craftmatch.integrations.storage import StorageClient, StorageError, build_object_path, get_storage_client

logger = get_logger("images.service")


class GeneratedImageError(CraftMatchException):
    pass


def _dto(image: GeneratedImage, is_used: bool) -> GeneratedImageDTO:
    return GeneratedImageDTO(
        id=image.id,
        user_id=image.user_id,
        prompt=image.prompt,
        image_url=image.image_url,
        created_at=image.created_at,
        is_used=is_used,
    )


class GeneratedImageService:
    """AI furniture visualisations owned by clients."""

    def __init__(
        self,
        db: AsyncSession,
        ai: AIClient | None = None,
        storage: StorageClient | None = None,
        limiter: FixedWindowRateLimiter | None = None,
    ):
        self.db = db
        self.ai = ai or get_ai_client()
        self.storage = storage or get_storage_client()
        self.limiter = limiter or image_generation_limiter

    async def _generated_count(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(GeneratedImage.id)).where(GeneratedImage.user_id == user_id)
        )
        return result.scalar() or 0

    async def remaining_generations(self, user_id: uuid.UUID) -> int:
        return max(0, settings.MAX_FREE_GENERATIONS - await self._generated_count(user_id))

    async def _used_ids(self, image_ids: list[uuid.UUID]) -> set[uuid.UUID]:
        if not image_ids:
            return set()
        result = await self.db.execute(
            select(Project.generated_image_id).where(Project.generated_image_id.in_(image_ids))
        )
        return set(result.scalars().all())

    async def generate(
        self, user: User, command: GenerateImageCommand, client_ip: str = "unknown"
    ) -> GenerateImageResponse:
        """Throttle, check the lifetime quota, then enhance, render and store."""
        verdict = self.limiter.hit(self.limiter.key_for(str(user.id), client_ip))
        if not verdict.allowed:
            raise GeneratedImageError(
                f"Too many requests. Try again in {verdict.retry_after_seconds} seconds",
                "RATE_LIMIT_EXCEEDED",
                status.HTTP_429_TOO_MANY_REQUESTS,
            )

        if user.role != UserRole.CLIENT.value:
            raise GeneratedImageError("Only clients can generate images", "FORBIDDEN", status.HTTP_403_FORBIDDEN)

        remaining = await self.remaining_generations(user.id)
        if remaining <= 0:
            raise GeneratedImageError(
                f"The limit of {settings.MAX_FREE_GENERATIONS} free generations has been reached",
                "GENERATION_LIMIT_REACHED",
                status.HTTP_429_TOO_MANY_REQUESTS,
            )

        local = prompt_engineer.enhance_description(command.prompt)
        try:
            refined = await self.ai.enhance_prompt(prompt_engineer.llm_brief(command.prompt, local))
            positive = f"{refined.positive_prompt}\n{local.technical_notes}"
            negative = refined.negative_prompt
            generated = await self.ai.generate_image(positive, negative)
        except AIClientError as e:
            logger.error("Image generation failed for %s: %s", user.id, e)
            raise GeneratedImageError(
                "Failed to generate the image", "AI_GENERATION_FAILED", status.HTTP_503_SERVICE_UNAVAILABLE
            ) from e

        path = build_object_path(user.id, extension=generated.extension)
        try:
            image_url = await self.storage.upload(
                StorageBucket.GENERATED_IMAGES, path, generated.content, generated.content_type
            )
        except StorageError as e:
            raise GeneratedImageError(
                "Failed to store the generated image", "UPLOAD_FAILED", status.HTTP_500_INTERNAL_SERVER_ERROR
            ) from e

        image = GeneratedImage(
            user_id=user.id,
            prompt=command.prompt,
            enhanced_positive_prompt=positive,
            enhanced_negative_prompt=negative,
            image_url=image_url,
        )
        self.db.add(image)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            await self._discard_blob(path)
            logger.error("Generated image insert failed for %s: %s", user.id, e)
            raise GeneratedImageError(
                "Failed to save the generated image", "SAVE_IMAGE_FAILED", status.HTTP_500_INTERNAL_SERVER_ERROR
            ) from e
        await self.db.refresh(image)

        logger.info(
            "Image %s generated for %s (style=%s, materials=%s)",
            image.id,
            user.id,
            local.style,
            ",".join(local.materials),
        )
        return GenerateImageResponse(**_dto(image, False).model_dump(), remaining_generations=remaining - 1)

    async def _discard_blob(self, path: str) -> None:
        try:
            await self.storage.remove(StorageBucket.GENERATED_IMAGES, [path])
        except StorageError as e:
            logger.warning("Failed to remove orphaned generated image %s: %s", path, e)

    async def list_images(
        self, user_id: uuid.UUID, params: PaginationParams, unused_only: bool = False
    ) -> GeneratedImagesListResponse:
        query = select(GeneratedImage).where(GeneratedImage.user_id == user_id)
        if unused_only:
            query = query.where(~select(Project.id).where(Project.generated_image_id == GeneratedImage.id).exists())
        query = query.order_by(GeneratedImage.created_at.desc(), GeneratedImage.id)

        images, total = await paginate(self.db, query, params)
        used = await self._used_ids([i.id for i in images])

        return GeneratedImagesListResponse(
            data=[_dto(i, i.id in used) for i in images],
            pagination=PaginationMeta.build(params, total),
            remaining_generations=await self.remaining_generations(user_id),
        )

    async def _require_own(self, image_id: uuid.UUID, user_id: uuid.UUID) -> GeneratedImage:
        image = await self.db.get(GeneratedImage, image_id)
        if not image or image.user_id != user_id:
            raise GeneratedImageError("Generated image not found", "NOT_FOUND", status.HTTP_404_NOT_FOUND)
        return image

    async def get_image(self, image_id: uuid.UUID, user_id: uuid.UUID) -> GeneratedImageDTO:
        image = await self._require_own(image_id, user_id)
        return _dto(image, image.id in await self._used_ids([image.id]))

    async def delete_image(self, image_id: uuid.UUID, user_id: uuid.UUID) -> None:
        image = await self._require_own(image_id, user_id)
        if await self._used_ids([image.id]):
            raise GeneratedImageError(
                "The image is used by a project and cannot be deleted", "IMAGE_IN_USE", status.HTTP_400_BAD_REQUEST
            )

        path = self.storage.path_from_url(StorageBucket.GENERATED_IMAGES, image.image_url)
        await self.db.delete(image)
        await self.db.flush()

        if path:
            try:
                await self.storage.remove(StorageBucket.GENERATED_IMAGES, [path])
            except StorageError as e:
                logger.warning("Image %s deleted but blob %s remains: %s", image_id, path, e)
        logger.info("Generated image %s deleted by %s", image_id, user_id)
