from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from craftmatch.common.enums import UserRole
from craftmatch.common.rate_limit import image_generation_limiter
from craftmatch.config import settings
from craftmatch.db.base import Base
from craftmatch.db.models import *  # noqa: F401,F403 - ensure all models loaded
from craftmatch.tests.factories import bearer, make_generated_image, make_user, project_payload

# In-memory SQLite shared across connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session):
    from craftmatch.api.deps import get_db
    from craftmatch.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Route uploads to a per-test directory."""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "STORAGE_LOCAL_PATH", str(tmp_path))
    return tmp_path


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    image_generation_limiter.reset()
    yield
    image_generation_limiter.reset()


# ---------- Users ----------


@pytest.fixture
async def client_user(db_session):
    return await make_user(db_session, UserRole.CLIENT, "client")


@pytest.fixture
async def other_client_user(db_session):
    return await make_user(db_session, UserRole.CLIENT, "other_client")


@pytest.fixture
async def artisan_user(db_session):
    return await make_user(db_session, UserRole.ARTISAN, "artisan")


@pytest.fixture
async def second_artisan_user(db_session):
    return await make_user(db_session, UserRole.ARTISAN, "artisan2")


@pytest.fixture
def client_headers(client_user):
    return bearer(client_user)


@pytest.fixture
def other_client_headers(other_client_user):
    return bearer(other_client_user)


@pytest.fixture
def artisan_headers(artisan_user):
    return bearer(artisan_user)


@pytest.fixture
def second_artisan_headers(second_artisan_user):
    return bearer(second_artisan_user)


# ---------- Marketplace data ----------


@pytest.fixture
async def category(db_session):
    from craftmatch.db.models.dictionary import Category

    row = Category(name="Stoły")
    db_session.add(row)
    await db_session.flush()
    return row


@pytest.fixture
async def material(db_session):
    from craftmatch.db.models.dictionary import Material

    row = Material(name="Drewno dębowe")
    db_session.add(row)
    await db_session.flush()
    return row


@pytest.fixture
async def specializations(db_session):
    from craftmatch.db.models.dictionary import Specialization

    rows = [Specialization(name="Stoły i biurka"), Specialization(name="Meble tapicerowane")]
    db_session.add_all(rows)
    await db_session.flush()
    return rows


@pytest.fixture
async def generated_image(db_session, client_user):
    return await make_generated_image(db_session, client_user)


@pytest.fixture
async def open_project(client, client_headers, generated_image, category, material):
    response = await client.post(
        "/api/projects",
        headers=client_headers,
        json=project_payload(generated_image, category, material),
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
async def artisan_profile(db_session, artisan_user):
    from craftmatch.db.models.artisan import ArtisanProfile

    profile = ArtisanProfile(
        user_id=artisan_user.id,
        company_name="Stolarnia Kowalski",
        nip="1234567890",
        is_public=False,
    )
    db_session.add(profile)
    await db_session.flush()
    await db_session.refresh(profile)
    return profile
