import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from craftmatch.common.pagination import PaginationMeta


class GenerateImageCommand(BaseModel):
    prompt: str = Field(..., min_length=10, max_length=500)

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if len(v.strip()) < 10:
            raise ValueError("Prompt must contain at least 10 non-blank characters")
        return v


class GeneratedImageDTO(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    prompt: str | None
    image_url: str
    created_at: datetime
    is_used: bool


class GenerateImageResponse(GeneratedImageDTO):
    remaining_generations: int


class GeneratedImagesListResponse(BaseModel):
    data: list[GeneratedImageDTO]
    pagination: PaginationMeta
    remaining_generations: int
