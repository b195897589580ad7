import uuid

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.api.deps import get_current_user, get_db, require_role
from craftmatch.common.enums import ProjectStatus, UserRole
from craftmatch.common.pagination import MAX_LIMIT, PaginatedResponse, PaginationParams
from craftmatch.common.uploads import read_upload
from craftmatch.core.proposals.schemas import (
    MAX_PRICE,
    CreateProposalCommand,
    MyProposalItem,
    ProjectProposalsResponse,
    ProposalDTO,
)
from craftmatch.core.proposals.service import ProposalService
from craftmatch.db.models.user import User

router = APIRouter(tags=["Proposals"])

proposal_author = require_role(
    UserRole.ARTISAN, code="FORBIDDEN_NOT_ARTISAN", message="Only artisans can submit proposals"
)


class MyProposalsPagination(PaginationParams):
    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-indexed)"),
        limit: int = Query(10, ge=1, le=MAX_LIMIT, description="Items per page"),
    ):
        super().__init__(page=page, limit=limit)


@router.post("/projects/{project_id}/proposals", response_model=ProposalDTO, status_code=201)
async def create_proposal(
    project_id: uuid.UUID,
    price: float = Form(..., gt=0, le=MAX_PRICE),
    message: str | None = Form(None, max_length=2000),
    attachment: UploadFile = File(...),
    current_user: User = Depends(proposal_author),
    db: AsyncSession = Depends(get_db),
):
    command = CreateProposalCommand(price=price, message=message)
    return await ProposalService(db).create_proposal(
        project_id, current_user, command, await read_upload(attachment)
    )


@router.get("/projects/{project_id}/proposals", response_model=ProjectProposalsResponse)
async def list_project_proposals(
    project_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProposalService(db).list_project_proposals(project_id, current_user)


@router.get("/proposals/me", response_model=PaginatedResponse[MyProposalItem])
async def list_my_proposals(
    status: ProjectStatus | None = Query(None, description="Filter by project status"),
    params: MyProposalsPagination = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProposalService(db).list_my_proposals(current_user, params, status)
