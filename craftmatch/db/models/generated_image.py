import uuid

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from craftmatch.db.base import BaseModel


class GeneratedImage(BaseModel):
    __tablename__ = "generated_images"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    enhanced_positive_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    enhanced_negative_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str] = mapped_column(String(1000), nullable=False)
