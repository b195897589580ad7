import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from craftmatch.common.enums import ProjectStatus


class CreateProjectCommand(BaseModel):
    generated_image_id: uuid.UUID
    category_id: uuid.UUID
    material_id: uuid.UUID
    dimensions: str | None = Field(None, max_length=100)
    budget_range: str | None = Field(None, max_length=50)


class ProjectFilters(BaseModel):
    status: ProjectStatus | None = None
    category_id: uuid.UUID | None = None
    material_id: uuid.UUID | None = None


class ProjectImage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    image_url: str
    prompt: str | None


class DictionaryRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class ProjectListItem(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    generated_image: ProjectImage
    category: DictionaryRef
    material: DictionaryRef
    status: ProjectStatus
    dimensions: str | None
    budget_range: str | None
    accepted_proposal_id: uuid.UUID | None
    accepted_price: float | None
    created_at: datetime
    updated_at: datetime


class ProjectDTO(ProjectListItem):
    proposals_count: int = 0


class AcceptProposalResult(BaseModel):
    id: uuid.UUID
    status: ProjectStatus
    accepted_proposal_id: uuid.UUID | None
    accepted_price: float | None
    updated_at: datetime


class ProjectStatusResult(BaseModel):
    id: uuid.UUID
    status: ProjectStatus
    updated_at: datetime
