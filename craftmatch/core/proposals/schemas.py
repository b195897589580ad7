import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from craftmatch.common.enums import ProjectStatus

MAX_PRICE = 1_000_000


class CreateProposalCommand(BaseModel):
    price: float = Field(..., gt=0, le=MAX_PRICE)
    message: str | None = Field(None, max_length=2000)


class ArtisanSummary(BaseModel):
    user_id: uuid.UUID
    company_name: str
    average_rating: float | None = None
    total_reviews: int = 0


class ProposalDTO(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    artisan: ArtisanSummary
    price: float
    message: str | None = None
    attachment_url: str
    created_at: datetime


class ProposalArtisanProfile(BaseModel):
    company_name: str


class ProjectProposalItem(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    artisan_id: uuid.UUID
    price: float
    message: str | None
    attachment_url: str
    created_at: datetime
    artisan_profile: ProposalArtisanProfile


class ProjectProposalsResponse(BaseModel):
    data: list[ProjectProposalItem]


class MyProposalProjectCategory(BaseModel):
    id: uuid.UUID
    name: str


class MyProposalProjectImage(BaseModel):
    image_url: str


class MyProposalProject(BaseModel):
    id: uuid.UUID
    status: ProjectStatus
    category: MyProposalProjectCategory
    generated_image: MyProposalProjectImage


class MyProposalItem(BaseModel):
    id: uuid.UUID
    project: MyProposalProject
    price: float
    attachment_url: str
    created_at: datetime
    is_accepted: bool
