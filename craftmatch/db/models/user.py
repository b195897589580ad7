from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from craftmatch.common.enums import UserRole
from craftmatch.db.base import BaseModel


class User(BaseModel):
    """Application-side mirror of an auth provider account.

    ``id`` equals the provider's user id (the token ``sub`` claim).
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False)
