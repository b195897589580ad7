import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UpsertArtisanProfileCommand(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    nip: str = Field(..., pattern=r"^[0-9]{10}$", description="Polish tax id, exactly 10 digits")
    is_public: bool = False


class AddSpecializationsCommand(BaseModel):
    specialization_ids: list[uuid.UUID] = Field(..., min_length=1)


class SpecializationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class PortfolioImageDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    image_url: str
    created_at: datetime


class ArtisanProfileDTO(BaseModel):
    user_id: uuid.UUID
    company_name: str
    nip: str
    is_public: bool
    specializations: list[SpecializationDTO] = []
    portfolio_images: list[PortfolioImageDTO] = []
    average_rating: float | None = None
    total_reviews: int = 0
    updated_at: datetime
