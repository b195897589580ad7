import uuid
from datetime import datetime, timezone

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.common.enums import ProjectStatus, UserRole
from craftmatch.common.exceptions import CraftMatchException
from craftmatch.common.logging import get_logger
from craftmatch.common.pagination import PaginatedResponse, PaginationMeta, PaginationParams, paginate
from craftmatch.core.projects.schemas import (
    AcceptProposalResult,
    CreateProjectCommand,
    DictionaryRef,
    ProjectDTO,
    ProjectFilters,
    ProjectImage,
    ProjectListItem,
    ProjectStatusResult,
)
from craftmatch.core.projects.workflow import InvalidStatusTransition, resolve_transition
from craftmatch.db.models.dictionary import Category, Material
from craftmatch.db.models.generated_image import GeneratedImage
from craftmatch.db.models.project import Project
from craftmatch.db.models.proposal import Proposal
from craftmatch.db.models.user import User

logger = get_logger("projects.service")


class ProjectError(CraftMatchException):
    pass


async def count_proposals(db: AsyncSession, project_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
    if not project_ids:
        return {}
    result = await db.execute(
        select(Proposal.project_id, func.count(Proposal.id))
        .where(Proposal.project_id.in_(project_ids))
        .group_by(Proposal.project_id)
    )
    return {project_id: count for project_id, count in result.all()}


def _list_item(project: Project) -> ProjectListItem:
    return ProjectListItem(
        id=project.id,
        client_id=project.client_id,
        generated_image=ProjectImage.model_validate(project.generated_image),
        category=DictionaryRef.model_validate(project.category),
        material=DictionaryRef.model_validate(project.material),
        status=project.status,
        dimensions=project.dimensions,
        budget_range=project.budget_range,
        accepted_proposal_id=project.accepted_proposal_id,
        accepted_price=float(project.accepted_price) if project.accepted_price is not None else None,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def _project_dto(project: Project, proposals_count: int) -> ProjectDTO:
    return ProjectDTO(**_list_item(project).model_dump(), proposals_count=proposals_count)


class ProjectService:
    """Furniture commission projects: creation, listing and lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, project_id: uuid.UUID) -> Project | None:
        result = await self.db.execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _require(self, project_id: uuid.UUID) -> Project:
        project = await self._load(project_id)
        if not project:
            raise ProjectError("Project not found", "PROJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        return project

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_project(self, command: CreateProjectCommand, client_id: uuid.UUID) -> ProjectDTO:
        """Create an open project from one of the client's unused generated images."""
        image = await self.db.get(GeneratedImage, command.generated_image_id)
        if not image:
            raise ProjectError("Generated image not found", "IMAGE_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        if image.user_id != client_id:
            raise ProjectError(
                "You do not have access to this image", "IMAGE_FORBIDDEN", status.HTTP_403_FORBIDDEN
            )

        existing = await self.db.execute(
            select(Project.id).where(Project.generated_image_id == command.generated_image_id)
        )
        if existing.first():
            raise ProjectError(
                "This image is already used by another project", "IMAGE_ALREADY_USED", status.HTTP_409_CONFLICT
            )

        if not await self.db.get(Category, command.category_id):
            raise ProjectError("Category not found", "CATEGORY_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        if not await self.db.get(Material, command.material_id):
            raise ProjectError("Material not found", "MATERIAL_NOT_FOUND", status.HTTP_404_NOT_FOUND)

        project = Project(
            client_id=client_id,
            generated_image_id=command.generated_image_id,
            category_id=command.category_id,
            material_id=command.material_id,
            status=ProjectStatus.OPEN.value,
            dimensions=command.dimensions or None,
            budget_range=command.budget_range or None,
        )
        self.db.add(project)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # Unique generated_image_id lost a race with a concurrent create
            raise ProjectError(
                "This image is already used by another project", "IMAGE_ALREADY_USED", status.HTTP_409_CONFLICT
            ) from e

        project = await self._require(project.id)
        logger.info("Project %s created by client %s", project.id, client_id)
        return _project_dto(project, 0)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_projects(
        self, filters: ProjectFilters, params: PaginationParams, user: User
    ) -> PaginatedResponse[ProjectListItem]:
        """Marketplace listing, visible to artisans only."""
        if user.role != UserRole.ARTISAN.value:
            raise ProjectError(
                "Only artisans can browse the project marketplace", "FORBIDDEN", status.HTTP_403_FORBIDDEN
            )

        query = select(Project)
        if filters.status:
            query = query.where(Project.status == filters.status.value)
        if filters.category_id:
            query = query.where(Project.category_id == filters.category_id)
        if filters.material_id:
            query = query.where(Project.material_id == filters.material_id)
        query = query.order_by(Project.created_at.desc(), Project.id)

        projects, total = await paginate(self.db, query, params)
        return PaginatedResponse[ProjectListItem](
            data=[_list_item(p) for p in projects],
            pagination=PaginationMeta.build(params, total),
        )

    async def list_my_projects(self, params: PaginationParams, client_id: uuid.UUID) -> PaginatedResponse[ProjectDTO]:
        query = (
            select(Project)
            .where(Project.client_id == client_id)
            .order_by(Project.created_at.desc(), Project.id)
        )
        projects, total = await paginate(self.db, query, params)
        counts = await count_proposals(self.db, [p.id for p in projects])

        return PaginatedResponse[ProjectDTO](
            data=[_project_dto(p, counts.get(p.id, 0)) for p in projects],
            pagination=PaginationMeta.build(params, total),
        )

    # ------------------------------------------------------------------
    # Details
    # ------------------------------------------------------------------

    async def get_project_details(self, project_id: uuid.UUID, user: User) -> ProjectDTO:
        """Visible to the owner, to any artisan while open, and to the accepted artisan."""
        project = await self._require(project_id)

        is_owner = project.client_id == user.id
        is_artisan = user.role == UserRole.ARTISAN.value
        can_view = is_owner or (is_artisan and project.status == ProjectStatus.OPEN.value)

        if not can_view and is_artisan and project.accepted_proposal_id:
            accepted = await self.db.get(Proposal, project.accepted_proposal_id)
            can_view = accepted is not None and accepted.artisan_id == user.id

        if not can_view:
            raise ProjectError(
                "You do not have access to this project", "PROJECT_FORBIDDEN", status.HTTP_403_FORBIDDEN
            )

        counts = await count_proposals(self.db, [project.id])
        return _project_dto(project, counts.get(project.id, 0))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def accept_proposal(
        self, project_id: uuid.UUID, proposal_id: uuid.UUID, user_id: uuid.UUID
    ) -> AcceptProposalResult:
        """Move an open project to in_progress and freeze the accepted price."""
        project = await self._require(project_id)

        if project.client_id != user_id:
            raise ProjectError(
                "You are not allowed to accept proposals for this project",
                "PROJECT_FORBIDDEN",
                status.HTTP_403_FORBIDDEN,
            )
        if project.status != ProjectStatus.OPEN.value:
            raise ProjectError(
                "Cannot accept a proposal: the project is not open",
                "PROJECT_NOT_OPEN",
                status.HTTP_400_BAD_REQUEST,
            )

        proposal = await self.db.get(Proposal, proposal_id)
        if not proposal:
            raise ProjectError("Proposal not found", "PROPOSAL_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        if proposal.project_id != project.id:
            raise ProjectError(
                "The proposal does not belong to this project",
                "PROPOSAL_PROJECT_MISMATCH",
                status.HTTP_400_BAD_REQUEST,
            )

        project.status = ProjectStatus.IN_PROGRESS.value
        project.accepted_proposal_id = proposal.id
        project.accepted_price = proposal.price
        project.updated_at = datetime.now(timezone.utc)
        await self.db.flush()

        logger.info(
            "Project %s accepted proposal %s at %s", project.id, proposal.id, project.accepted_price
        )
        return AcceptProposalResult(
            id=project.id,
            status=project.status,
            accepted_proposal_id=project.accepted_proposal_id,
            accepted_price=float(project.accepted_price),
            updated_at=project.updated_at,
        )

    async def update_project_status(
        self, project_id: uuid.UUID, new_status: ProjectStatus, user_id: uuid.UUID
    ) -> ProjectStatusResult:
        project = await self._require(project_id)

        if project.client_id != user_id:
            raise ProjectError(
                "You are not allowed to change the status of this project",
                "PROJECT_FORBIDDEN",
                status.HTTP_403_FORBIDDEN,
            )

        current = ProjectStatus(project.status)
        try:
            target = resolve_transition(current, new_status)
        except InvalidStatusTransition as e:
            raise ProjectError(str(e), "INVALID_STATUS_TRANSITION", status.HTTP_400_BAD_REQUEST) from e

        if target is None:
            return ProjectStatusResult(id=project.id, status=current, updated_at=project.updated_at)

        project.status = target.value
        project.updated_at = datetime.now(timezone.utc)
        await self.db.flush()

        logger.info("Project %s status: %s -> %s", project.id, current.value, target.value)
        return ProjectStatusResult(id=project.id, status=target, updated_at=project.updated_at)
