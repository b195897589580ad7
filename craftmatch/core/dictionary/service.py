import uuid

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.db.models.dictionary import Category, Material, Specialization


class DictionaryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class DictionaryResponse(BaseModel):
    data: list[DictionaryItem]


class DictionaryService:
    """Read-only reference lists used by project and profile forms."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _all(self, model) -> DictionaryResponse:
        result = await self.db.execute(select(model).order_by(model.name))
        return DictionaryResponse(data=[DictionaryItem.model_validate(row) for row in result.scalars().all()])

    async def get_categories(self) -> DictionaryResponse:
        return await self._all(Category)

    async def get_materials(self) -> DictionaryResponse:
        return await self._all(Material)

    async def get_specializations(self) -> DictionaryResponse:
        return await self._all(Specialization)
