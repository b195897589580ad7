import uuid
from decimal import Decimal

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.common.enums import ProjectStatus, StorageBucket, UserRole
from craftmatch.common.exceptions import CraftMatchException
from craftmatch.common.logging import get_logger
from craftmatch.common.pagination import PaginatedResponse, PaginationMeta, PaginationParams, count_rows
from craftmatch.common.uploads import ATTACHMENT_TYPES, UploadedFile, validate_upload
from craftmatch.core.projects.workflow import accepts_proposals
from craftmatch.core.proposals.schemas import (
    ArtisanSummary,
    CreateProposalCommand,
    MyProposalItem,
    MyProposalProject,
    MyProposalProjectCategory,
    MyProposalProjectImage,
    ProjectProposalItem,
    ProjectProposalsResponse,
    ProposalArtisanProfile,
    ProposalDTO,
)
from craftmatch.core.reviews.service import rating_summary
from craftmatch.db.models.artisan import ArtisanProfile
from craftmatch.db.models.project import Project
from craftmatch.db.models.proposal import Proposal
from craftmatch.db.models.user import User
from craftmatch.integrations.storage import (
    StorageClient,
    StorageError,
    build_object_path,
    get_storage_client,
    sanitize_extension,
)

logger = get_logger("proposals.service")

UNKNOWN_ARTISAN = "Unknown artisan"


class ProposalError(CraftMatchException):
    pass


class ProposalService:
    """Artisan offers on open projects."""

    def __init__(self, db: AsyncSession, storage: StorageClient | None = None):
        self.db = db
        self.storage = storage or get_storage_client()

    async def create_proposal(
        self,
        project_id: uuid.UUID,
        artisan: User,
        command: CreateProposalCommand,
        attachment: UploadedFile,
    ) -> ProposalDTO:
        """Submit one offer per (project, artisan).

        Guards run in order: caller role, project existence, project open,
        no prior offer. The attachment is stored only after every guard
        passes and is removed again if the row cannot be written.
        """
        if artisan.role != UserRole.ARTISAN.value:
            raise ProposalError(
                "Only artisans can submit proposals", "FORBIDDEN_NOT_ARTISAN", status.HTTP_403_FORBIDDEN
            )

        project = await self.db.get(Project, project_id)
        if not project:
            raise ProposalError("Project not found", "PROJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        if not accepts_proposals(ProjectStatus(project.status)):
            raise ProposalError(
                "The project no longer accepts proposals", "PROJECT_NOT_OPEN", status.HTTP_403_FORBIDDEN
            )

        existing = await self.db.execute(
            select(Proposal.id).where(Proposal.project_id == project_id, Proposal.artisan_id == artisan.id)
        )
        if existing.first():
            raise ProposalError(
                "You have already submitted a proposal for this project",
                "PROPOSAL_ALREADY_EXISTS",
                status.HTTP_409_CONFLICT,
            )

        validate_upload(attachment, ATTACHMENT_TYPES)
        path = build_object_path(
            artisan.id, project_id, extension=sanitize_extension(attachment.filename, "pdf")
        )
        try:
            attachment_url = await self.storage.upload(
                StorageBucket.PROPOSAL_ATTACHMENTS, path, attachment.content, attachment.content_type
            )
        except StorageError as e:
            raise ProposalError(
                "Failed to upload the attachment", "UPLOAD_FAILED", status.HTTP_500_INTERNAL_SERVER_ERROR
            ) from e

        proposal = Proposal(
            project_id=project_id,
            artisan_id=artisan.id,
            price=Decimal(str(command.price)),
            message=command.message or None,
            attachment_url=attachment_url,
        )
        self.db.add(proposal)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self._discard_attachment(path)
            raise ProposalError(
                "You have already submitted a proposal for this project",
                "PROPOSAL_ALREADY_EXISTS",
                status.HTTP_409_CONFLICT,
            ) from e
        except SQLAlchemyError as e:
            await self._discard_attachment(path)
            logger.error("Proposal insert failed | project=%s | artisan=%s | %s", project_id, artisan.id, e)
            raise ProposalError(
                "Failed to create the proposal", "CREATE_PROPOSAL_FAILED", status.HTTP_500_INTERNAL_SERVER_ERROR
            ) from e
        await self.db.refresh(proposal)

        profile = await self.db.get(ArtisanProfile, artisan.id)
        ratings = await rating_summary(self.db, artisan.id)

        logger.info("Proposal %s submitted for project %s by %s", proposal.id, project_id, artisan.id)
        return ProposalDTO(
            id=proposal.id,
            project_id=proposal.project_id,
            artisan=ArtisanSummary(
                user_id=artisan.id,
                company_name=profile.company_name if profile else UNKNOWN_ARTISAN,
                average_rating=ratings.average_rating,
                total_reviews=ratings.total_reviews,
            ),
            price=float(proposal.price),
            message=proposal.message,
            attachment_url=proposal.attachment_url,
            created_at=proposal.created_at,
        )

    async def _discard_attachment(self, path: str) -> None:
        try:
            await self.storage.remove(StorageBucket.PROPOSAL_ATTACHMENTS, [path])
        except StorageError as e:
            logger.warning("Failed to remove orphaned attachment %s: %s", path, e)

    async def list_project_proposals(self, project_id: uuid.UUID, user: User) -> ProjectProposalsResponse:
        """Offers on a project, for its owner or the artisan whose offer was accepted."""
        project = await self.db.get(Project, project_id)
        if not project:
            raise ProposalError("Project not found", "PROJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)

        allowed = project.client_id == user.id
        if not allowed and user.role == UserRole.ARTISAN.value and project.accepted_proposal_id:
            accepted = await self.db.get(Proposal, project.accepted_proposal_id)
            allowed = accepted is not None and accepted.artisan_id == user.id
        if not allowed:
            raise ProposalError(
                "You do not have access to this project's proposals", "FORBIDDEN", status.HTTP_403_FORBIDDEN
            )

        result = await self.db.execute(
            select(Proposal, ArtisanProfile.company_name)
            .outerjoin(ArtisanProfile, ArtisanProfile.user_id == Proposal.artisan_id)
            .where(Proposal.project_id == project_id)
            .order_by(Proposal.created_at.desc(), Proposal.id)
        )
        return ProjectProposalsResponse(
            data=[
                ProjectProposalItem(
                    id=p.id,
                    project_id=p.project_id,
                    artisan_id=p.artisan_id,
                    price=float(p.price),
                    message=p.message,
                    attachment_url=p.attachment_url,
                    created_at=p.created_at,
                    artisan_profile=ProposalArtisanProfile(company_name=company_name or UNKNOWN_ARTISAN),
                )
                for p, company_name in result.all()
            ]
        )

    async def list_my_proposals(
        self,
        artisan: User,
        params: PaginationParams,
        project_status: ProjectStatus | None = None,
    ) -> PaginatedResponse[MyProposalItem]:
        if artisan.role != UserRole.ARTISAN.value:
            raise ProposalError(
                "Only artisans can access their proposals", "FORBIDDEN", status.HTTP_403_FORBIDDEN
            )

        conditions = [Proposal.artisan_id == artisan.id]
        if project_status:
            conditions.append(Project.status == project_status.value)

        total = await count_rows(
            self.db,
            select(Proposal.id).join(Project, Proposal.project_id == Project.id).where(*conditions),
        )
        result = await self.db.execute(
            select(Proposal, Project)
            .join(Project, Proposal.project_id == Project.id)
            .where(*conditions)
            .order_by(Proposal.created_at.desc(), Proposal.id)
            .offset(params.offset)
            .limit(params.limit)
        )

        items = [
            MyProposalItem(
                id=proposal.id,
                project=MyProposalProject(
                    id=project.id,
                    status=project.status,
                    category=MyProposalProjectCategory(id=project.category.id, name=project.category.name),
                    generated_image=MyProposalProjectImage(image_url=project.generated_image.image_url),
                ),
                price=float(proposal.price),
                attachment_url=proposal.attachment_url,
                created_at=proposal.created_at,
                is_accepted=project.accepted_proposal_id == proposal.id,
            )
            for proposal, project in result.all()
        ]
        return PaginatedResponse[MyProposalItem](data=items, pagination=PaginationMeta.build(params, total))
