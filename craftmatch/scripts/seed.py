"""
Seed script for the CraftMatch reference dictionaries.

Inserts the furniture categories, materials and artisan specializations the
project and profile forms pick from. Existing names are left untouched, so
the script can be re-run safely.

Usage:
    python -m craftmatch.scripts.seed
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from craftmatch.common.logging import get_logger, setup_logging
from craftmatch.db.models import Category, Material, Specialization
from craftmatch.db.session import async_session_factory

logger = get_logger("scripts.seed")

CATEGORIES = [
    "Krzesła",
    "Stoły",
    "Szafy",
    "Komody",
    "Regały",
    "Biurka",
    "Łóżka",
    "Fotele",
    "Ławki",
    "Stoliki kawowe",
    "Szafki nocne",
    "Witryny",
]

MATERIALS = [
    "Drewno dębowe",
    "Drewno bukowe",
    "Drewno sosnowe",
    "Drewno orzechowe",
    "Drewno jesionowe",
    "Metal",
    "Stal",
    "Aluminium",
    "Szkło",
    "MDF",
    "Płyta wiórowa",
    "Sklejka",
    "Ratan",
    "Wiklina",
    "Tkanina",
    "Skóra naturalna",
    "Skóra ekologiczna",
    "Tworzywo sztuczne",
    "Beton",
    "Marmur",
]

SPECIALIZATIONS = [
    "Krzesła i fotele",
    "Stoły i biurka",
    "Szafy i meble przechowalne",
    "Meble tapicerowane",
    "Meble metalowe",
    "Meble szklane",
    "Meble ogrodowe",
    "Meble dziecięce",
    "Meble kuchenne",
    "Meble łazienkowe",
    "Renowacja mebli",
    "Stolarka artystyczna",
]


async def seed_dictionary(session: AsyncSession, model, names: list[str]) -> int:
    result = await session.execute(select(model.name))
    existing = set(result.scalars().all())
    missing = [name for name in names if name not in existing]
    session.add_all(model(name=name) for name in missing)
    return len(missing)


async def seed(session: AsyncSession) -> dict[str, int]:
    counts = {
        "categories": await seed_dictionary(session, Category, CATEGORIES),
        "materials": await seed_dictionary(session, Material, MATERIALS),
        "specializations": await seed_dictionary(session, Specialization, SPECIALIZATIONS),
    }
    await session.flush()
    return counts


async def main() -> None:
    setup_logging()
    async with async_session_factory() as session:
        counts = await seed(session)
        await session.commit()
    for table, inserted in counts.items():
        logger.info("%s: %d inserted", table, inserted)


if __name__ == "__main__":
    asyncio.run(main())
