from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.api.deps import get_db
from craftmatch.core.dictionary.service import DictionaryResponse, DictionaryService

router = APIRouter(tags=["Dictionaries"])


@router.get("/categories", response_model=DictionaryResponse)
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await DictionaryService(db).get_categories()


@router.get("/materials", response_model=DictionaryResponse)
async def list_materials(db: AsyncSession = Depends(get_db)):
    return await DictionaryService(db).get_materials()


@router.get("/specializations", response_model=DictionaryResponse)
async def list_specializations(db: AsyncSession = Depends(get_db)):
    return await DictionaryService(db).get_specializations()
