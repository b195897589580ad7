import pytest

from craftmatch.scripts.seed import CATEGORIES, MATERIALS, SPECIALIZATIONS, seed


@pytest.mark.asyncio
async def test_dictionaries_are_public_and_sorted(client, db_session):
    counts = await seed(db_session)
    assert counts == {
        "categories": len(CATEGORIES),
        "materials": len(MATERIALS),
        "specializations": len(SPECIALIZATIONS),
    }

    for path, names in (
        ("/api/categories", CATEGORIES),
        ("/api/materials", MATERIALS),
        ("/api/specializations", SPECIALIZATIONS),
    ):
        response = await client.get(path)
        assert response.status_code == 200
        data = response.json()["data"]
        assert {item["name"] for item in data} == set(names)
        assert [item["name"] for item in data] == sorted(item["name"] for item in data)


@pytest.mark.asyncio
async def test_seed_is_idempotent(db_session, category):
    counts = await seed(db_session)
    assert counts["categories"] == len(CATEGORIES) - 1

    counts = await seed(db_session)
    assert counts == {"categories": 0, "materials": 0, "specializations": 0}


@pytest.mark.asyncio
async def test_empty_dictionary(client):
    response = await client.get("/api/categories")
    assert response.status_code == 200
    assert response.json() == {"data": []}
