import uuid

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.api.deps import get_current_user, get_db, require_role
from craftmatch.common.enums import ProjectStatus, UserRole
from craftmatch.common.pagination import PaginatedResponse, PaginationParams
from craftmatch.core.projects.schemas import (
    AcceptProposalResult,
    CreateProjectCommand,
    ProjectDTO,
    ProjectFilters,
    ProjectListItem,
    ProjectStatusResult,
)
from craftmatch.core.projects.service import ProjectService
from craftmatch.db.models.user import User

router = APIRouter(prefix="/projects", tags=["Projects"])


# ---------- Schemas ----------


class AcceptProposalRequest(BaseModel):
    proposal_id: uuid.UUID


class UpdateStatusRequest(BaseModel):
    status: ProjectStatus


# ---------- Endpoints ----------


@router.post("", response_model=ProjectDTO, status_code=201)
async def create_project(
    body: CreateProjectCommand,
    current_user: User = Depends(require_role(UserRole.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService(db).create_project(body, current_user.id)


@router.get("", response_model=PaginatedResponse[ProjectListItem])
async def list_projects(
    status: ProjectStatus | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    material_id: uuid.UUID | None = Query(None),
    params: PaginationParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    filters = ProjectFilters(status=status, category_id=category_id, material_id=material_id)
    return await ProjectService(db).list_projects(filters, params, current_user)


@router.get("/me", response_model=PaginatedResponse[ProjectDTO])
async def list_my_projects(
    params: PaginationParams = Depends(),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService(db).list_my_projects(params, current_user.id)


@router.get("/{project_id}", response_model=ProjectDTO)
async def get_project(
    project_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService(db).get_project_details(project_id, current_user)


@router.post("/{project_id}/accept-proposal", response_model=AcceptProposalResult)
async def accept_proposal(
    project_id: uuid.UUID,
    body: AcceptProposalRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService(db).accept_proposal(project_id, body.proposal_id, current_user.id)


@router.patch("/{project_id}/status", response_model=ProjectStatusResult)
async def update_project_status(
    project_id: uuid.UUID,
    body: UpdateStatusRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService(db).update_project_status(project_id, body.status, current_user.id)
