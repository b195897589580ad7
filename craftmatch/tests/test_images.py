import base64
import uuid
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from craftmatch.common.enums import StorageBucket
from craftmatch.common.rate_limit import FixedWindowRateLimiter
from craftmatch.config import settings
from craftmatch.core.images.schemas import GenerateImageCommand
from craftmatch.core.images.service import GeneratedImageError, GeneratedImageService
from craftmatch.integrations.ai_client import AIClient, AIClientError, GeneratedImageData, ImagePrompt
from craftmatch.tests.factories import make_generated_image

PROMPT = "Dębowy stół w stylu skandynawskim, 180 cm, czarne metalowe nogi"


# ---------- Generate ----------


@pytest.mark.asyncio
async def test_generate_image(client, client_headers, client_user, local_storage):
    response = await client.post("/api/images/generate", headers=client_headers, json={"prompt": PROMPT})
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == str(client_user.id)
    assert data["prompt"] == PROMPT
    assert data["is_used"] is False
    assert data["remaining_generations"] == settings.MAX_FREE_GENERATIONS - 1
    assert data["image_url"].startswith(f"/storage/generated-images/{client_user.id}/")
    assert (Path(local_storage) / data["image_url"][len("/storage/"):]).exists()


@pytest.mark.asyncio
async def test_generate_image_stores_enhanced_prompts(db_session, client_user):
    from craftmatch.db.models.generated_image import GeneratedImage

    response = await GeneratedImageService(db_session).generate(client_user, GenerateImageCommand(prompt=PROMPT))
    image = await db_session.get(GeneratedImage, response.id)

    assert PROMPT in image.enhanced_positive_prompt
    assert "- Wood construction: show grain patterns and joinery details" in image.enhanced_positive_prompt
    assert "- Scandinavian style: appropriate proportions and details" in image.enhanced_positive_prompt
    assert image.enhanced_negative_prompt


@pytest.mark.asyncio
async def test_generate_image_only_for_clients(client, artisan_headers):
    response = await client.post("/api/images/generate", headers=artisan_headers, json={"prompt": PROMPT})
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
@pytest.mark.parametrize("prompt", ["too short", " " * 20, "x" * 501])
async def test_generate_image_validates_prompt(client, client_headers, prompt):
    response = await client.post("/api/images/generate", headers=client_headers, json={"prompt": prompt})
    assert response.status_code == 422
    assert "prompt" in response.json()["error"]["details"]


@pytest.mark.asyncio
async def test_generation_quota(client, db_session, client_headers, client_user, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FREE_GENERATIONS", 2)
    await make_generated_image(db_session, client_user)

    response = await client.post("/api/images/generate", headers=client_headers, json={"prompt": PROMPT})
    assert response.status_code == 201
    assert response.json()["remaining_generations"] == 0

    response = await client.post("/api/images/generate", headers=client_headers, json={"prompt": PROMPT})
    assert response.status_code == 429
    assert response.json()["error"]["code"] == "GENERATION_LIMIT_REACHED"


@pytest.mark.asyncio
async def test_generation_rate_limit(db_session, client_user):
    limiter = FixedWindowRateLimiter(limit=2, window_seconds=60)
    service = GeneratedImageService(db_session, limiter=limiter)
    command = GenerateImageCommand(prompt=PROMPT)

    await service.generate(client_user, command)
    await service.generate(client_user, command)
    with pytest.raises(GeneratedImageError) as exc:
        await service.generate(client_user, command)

    assert exc.value.code == "RATE_LIMIT_EXCEEDED"
    assert exc.value.status_code == 429


@pytest.mark.asyncio
async def test_generation_ai_failure(db_session, client_user):
    ai = MagicMock()
    ai.enhance_prompt = AsyncMock(return_value=ImagePrompt(positive_prompt="oak table", negative_prompt="blurry"))
    ai.generate_image = AsyncMock(side_effect=AIClientError("provider down"))
    service = GeneratedImageService(db_session, ai=ai)

    with pytest.raises(GeneratedImageError) as exc:
        await service.generate(client_user, GenerateImageCommand(prompt=PROMPT))

    assert exc.value.code == "AI_GENERATION_FAILED"
    assert exc.value.status_code == 503
    assert await service.remaining_generations(client_user.id) == settings.MAX_FREE_GENERATIONS


def fake_ai(generated: GeneratedImageData) -> MagicMock:
    ai = MagicMock()
    ai.enhance_prompt = AsyncMock(return_value=ImagePrompt(positive_prompt="oak table", negative_prompt="blurry"))
    ai.generate_image = AsyncMock(return_value=generated)
    return ai


def fake_storage() -> MagicMock:
    storage = MagicMock()
    storage.upload = AsyncMock(return_value="/storage/generated-images/x.jpg")
    storage.remove = AsyncMock()
    return storage


@pytest.mark.asyncio
async def test_generated_image_uploaded_with_returned_type(db_session, client_user):
    storage = fake_storage()
    ai = fake_ai(GeneratedImageData(content=b"\xff\xd8\xff jpeg", content_type="image/jpeg"))
    service = GeneratedImageService(db_session, ai=ai, storage=storage)

    await service.generate(client_user, GenerateImageCommand(prompt=PROMPT))

    bucket, path, content, content_type = storage.upload.await_args.args
    assert bucket == StorageBucket.GENERATED_IMAGES
    assert path.startswith(f"{client_user.id}/")
    assert path.endswith(".jpg")
    assert content == b"\xff\xd8\xff jpeg"
    assert content_type == "image/jpeg"


@pytest.mark.asyncio
async def test_generated_blob_removed_when_insert_fails(db_session, client_user, monkeypatch):
    storage = fake_storage()
    service = GeneratedImageService(db_session, ai=fake_ai(GeneratedImageData(content=b"png")), storage=storage)
    monkeypatch.setattr(db_session, "flush", AsyncMock(side_effect=SQLAlchemyError("insert failed")))

    with pytest.raises(GeneratedImageError) as exc:
        await service.generate(client_user, GenerateImageCommand(prompt=PROMPT))

    assert exc.value.code == "SAVE_IMAGE_FAILED"
    assert exc.value.status_code == 500
    bucket, paths = storage.remove.await_args.args
    assert bucket == StorageBucket.GENERATED_IMAGES
    assert paths == [storage.upload.await_args.args[1]]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header, content_type",
    [("data:image/jpeg;base64,", "image/jpeg"), ("data:image/webp;base64,", "image/webp"), ("", "image/png")],
)
async def test_ai_client_reads_image_type_from_data_url(monkeypatch, header, content_type):
    monkeypatch.setattr(settings, "AI_API_KEY", "sk-live")
    ai = AIClient()
    encoded = base64.b64encode(b"image-bytes").decode()
    response = {"choices": [{"message": {"images": [{"image_url": {"url": header + encoded}}]}}]}
    monkeypatch.setattr(ai, "_completion", AsyncMock(return_value=response))

    generated = await ai.generate_image("oak table", "blurry")

    assert generated.content == b"image-bytes"
    assert generated.content_type == content_type


# ---------- List / get / delete ----------


@pytest.mark.asyncio
async def test_list_generated_images(client, db_session, client_headers, client_user, open_project):
    unused = await make_generated_image(db_session, client_user)

    response = await client.get("/api/images/generated", headers=client_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 2
    assert body["remaining_generations"] == settings.MAX_FREE_GENERATIONS - 2
    used = {item["id"]: item["is_used"] for item in body["data"]}
    assert used == {open_project["generated_image"]["id"]: True, str(unused.id): False}

    response = await client.get("/api/images/generated", headers=client_headers, params={"unused_only": "true"})
    body = response.json()
    assert [item["id"] for item in body["data"]] == [str(unused.id)]
    assert body["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_get_generated_image(client, client_headers, other_client_headers, generated_image):
    response = await client.get(f"/api/images/generated/{generated_image.id}", headers=client_headers)
    assert response.status_code == 200
    assert response.json()["id"] == str(generated_image.id)

    response = await client.get(f"/api/images/generated/{generated_image.id}", headers=other_client_headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_delete_generated_image(client, client_headers, generated_image):
    response = await client.delete(f"/api/images/generated/{generated_image.id}", headers=client_headers)
    assert response.status_code == 204

    response = await client.get(f"/api/images/generated/{generated_image.id}", headers=client_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cannot_delete_image_used_by_project(client, client_headers, open_project):
    image_id = open_project["generated_image"]["id"]
    response = await client.delete(f"/api/images/generated/{image_id}", headers=client_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "IMAGE_IN_USE"


@pytest.mark.asyncio
async def test_delete_unknown_image(client, client_headers):
    response = await client.delete(f"/api/images/generated/{uuid.uuid4()}", headers=client_headers)
    assert response.status_code == 404
