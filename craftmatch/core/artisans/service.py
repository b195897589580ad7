import uuid
from datetime import datetime, timezone

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.common.enums import StorageBucket
from craftmatch.common.exceptions import CraftMatchException
from craftmatch.common.logging import get_logger
from craftmatch.common.uploads import PORTFOLIO_TYPES, UploadedFile, validate_upload
from craftmatch.core.artisans.schemas import (
    ArtisanProfileDTO,
    PortfolioImageDTO,
    SpecializationDTO,
    UpsertArtisanProfileCommand,
)
from craftmatch.core.reviews.service import rating_summary
from craftmatch.db.models.artisan import ArtisanProfile, ArtisanSpecialization, PortfolioImage
from craftmatch.db.models.dictionary import Specialization
from craftmatch.integrations.storage import (
    StorageClient,
    StorageError,
    build_object_path,
    get_storage_client,
    sanitize_extension,
)

logger = get_logger("artisans.service")

# A public profile must keep at least this many portfolio images
MIN_PUBLIC_PORTFOLIO_IMAGES = 5


class ArtisanProfileError(CraftMatchException):
    pass


def _nip_conflict() -> ArtisanProfileError:
    return ArtisanProfileError(
        "This NIP is already used by another artisan", "NIP_CONFLICT", status.HTTP_409_CONFLICT
    )


class ArtisanProfileService:
    """Company data, specializations and portfolio of an artisan."""

    def __init__(self, db: AsyncSession, storage: StorageClient | None = None):
        self.db = db
        self.storage = storage or get_storage_client()

    async def _require_profile(self, user_id: uuid.UUID) -> ArtisanProfile:
        profile = await self.db.get(ArtisanProfile, user_id)
        if not profile:
            raise ArtisanProfileError("Artisan profile not found", "PROFILE_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        return profile

    async def _to_dto(self, profile: ArtisanProfile) -> ArtisanProfileDTO:
        specs = await self.db.execute(
            select(Specialization)
            .join(ArtisanSpecialization, ArtisanSpecialization.specialization_id == Specialization.id)
            .where(ArtisanSpecialization.artisan_id == profile.user_id)
            .order_by(Specialization.name)
        )
        images = await self.db.execute(
            select(PortfolioImage)
            .where(PortfolioImage.artisan_id == profile.user_id)
            .order_by(PortfolioImage.created_at.desc(), PortfolioImage.id)
        )
        ratings = await rating_summary(self.db, profile.user_id)

        return ArtisanProfileDTO(
            user_id=profile.user_id,
            company_name=profile.company_name,
            nip=profile.nip,
            is_public=profile.is_public,
            specializations=[SpecializationDTO.model_validate(s) for s in specs.scalars().all()],
            portfolio_images=[PortfolioImageDTO.model_validate(i) for i in images.scalars().all()],
            average_rating=ratings.average_rating,
            total_reviews=ratings.total_reviews,
            updated_at=profile.updated_at,
        )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: uuid.UUID) -> ArtisanProfileDTO:
        return await self._to_dto(await self._require_profile(user_id))

    async def get_public_profile(self, artisan_id: uuid.UUID) -> ArtisanProfileDTO:
        profile = await self._require_profile(artisan_id)
        if not profile.is_public:
            raise ArtisanProfileError(
                "This artisan profile is not published", "PROFILE_NOT_PUBLISHED", status.HTTP_403_FORBIDDEN
            )
        return await self._to_dto(profile)

    async def upsert_profile(self, command: UpsertArtisanProfileCommand, user_id: uuid.UUID) -> ArtisanProfileDTO:
        """Create or update the caller's profile, keyed by user id."""
        owner = await self.db.execute(select(ArtisanProfile.user_id).where(ArtisanProfile.nip == command.nip))
        owner_id = owner.scalar_one_or_none()
        if owner_id is not None and owner_id != user_id:
            raise _nip_conflict()

        profile = await self.db.get(ArtisanProfile, user_id)
        if profile is None:
            profile = ArtisanProfile(user_id=user_id)
            self.db.add(profile)
        profile.company_name = command.company_name
        profile.nip = command.nip
        profile.is_public = command.is_public
        profile.updated_at = datetime.now(timezone.utc)

        try:
            await self.db.flush()
        except IntegrityError as e:
            # Another artisan claimed the NIP between the check and the write
            raise _nip_conflict() from e
        await self.db.refresh(profile)

        logger.info("Artisan profile upserted for %s (public=%s)", user_id, profile.is_public)
        return await self._to_dto(profile)

    # ------------------------------------------------------------------
    # Specializations
    # ------------------------------------------------------------------

    async def add_specializations(
        self, specialization_ids: list[uuid.UUID], user_id: uuid.UUID
    ) -> list[SpecializationDTO]:
        await self._require_profile(user_id)

        wanted = list(dict.fromkeys(specialization_ids))
        found = await self.db.execute(select(Specialization).where(Specialization.id.in_(wanted)))
        specializations = list(found.scalars().all())
        if len(specializations) != len(wanted):
            raise ArtisanProfileError(
                "One or more specializations do not exist", "SPECIALIZATION_NOT_FOUND", status.HTTP_404_NOT_FOUND
            )

        linked = await self.db.execute(
            select(ArtisanSpecialization.specialization_id).where(
                ArtisanSpecialization.artisan_id == user_id,
                ArtisanSpecialization.specialization_id.in_(wanted),
            )
        )
        already = set(linked.scalars().all())
        for spec_id in wanted:
            if spec_id not in already:
                self.db.add(ArtisanSpecialization(artisan_id=user_id, specialization_id=spec_id))
        await self.db.flush()

        logger.info("Artisan %s: %d specialization(s) added", user_id, len(wanted) - len(already))
        return [SpecializationDTO.model_validate(s) for s in sorted(specializations, key=lambda s: s.name)]

    async def remove_specialization(self, specialization_id: uuid.UUID, user_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(ArtisanSpecialization).where(
                ArtisanSpecialization.artisan_id == user_id,
                ArtisanSpecialization.specialization_id == specialization_id,
            )
        )

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    async def upload_portfolio_image(self, file: UploadedFile, user_id: uuid.UUID) -> PortfolioImageDTO:
        await self._require_profile(user_id)
        validate_upload(file, PORTFOLIO_TYPES)

        path = f"{user_id}/{uuid.uuid4()}.{sanitize_extension(file.filename, 'jpg')}"
        try:
            url = await self.storage.upload(StorageBucket.PORTFOLIO_IMAGES, path, file.content, file.content_type)
        except StorageError as e:
            raise ArtisanProfileError(
                "Failed to upload the image", "IMAGE_UPLOAD_ERROR", status.HTTP_500_INTERNAL_SERVER_ERROR
            ) from e

        image = PortfolioImage(artisan_id=user_id, image_url=url)
        self.db.add(image)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            try:
                await self.storage.remove(StorageBucket.PORTFOLIO_IMAGES, [path])
            except StorageError as cleanup_error:
                logger.warning("Failed to remove orphaned portfolio image %s: %s", path, cleanup_error)
            raise ArtisanProfileError(
                "Failed to save image metadata", "IMAGE_METADATA_ERROR", status.HTTP_500_INTERNAL_SERVER_ERROR
            ) from e
        await self.db.refresh(image)

        logger.info("Portfolio image %s uploaded for %s", image.id, user_id)
        return PortfolioImageDTO.model_validate(image)

    async def delete_portfolio_image(self, image_id: uuid.UUID, user_id: uuid.UUID) -> None:
        result = await self.db.execute(
            select(PortfolioImage).where(PortfolioImage.id == image_id, PortfolioImage.artisan_id == user_id)
        )
        image = result.scalar_one_or_none()
        if not image:
            raise ArtisanProfileError(
                "Image not found or it does not belong to you", "IMAGE_NOT_FOUND", status.HTTP_404_NOT_FOUND
            )

        profile = await self._require_profile(user_id)
        if profile.is_public:
            count = await self.db.execute(
                select(func.count(PortfolioImage.id)).where(PortfolioImage.artisan_id == user_id)
            )
            if (count.scalar() or 0) <= MIN_PUBLIC_PORTFOLIO_IMAGES:
                raise ArtisanProfileError(
                    f"A public profile must keep at least {MIN_PUBLIC_PORTFOLIO_IMAGES} portfolio images",
                    "MIN_IMAGES_REQUIRED",
                    status.HTTP_400_BAD_REQUEST,
                )

        path = self.storage.path_from_url(StorageBucket.PORTFOLIO_IMAGES, image.image_url)
        await self.db.delete(image)
        await self.db.flush()

        if path:
            try:
                await self.storage.remove(StorageBucket.PORTFOLIO_IMAGES, [path])
            except StorageError as e:
                logger.warning("Portfolio image %s deleted but blob %s remains: %s", image_id, path, e)
        logger.info("Portfolio image %s deleted for %s", image_id, user_id)
