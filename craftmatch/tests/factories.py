"""Builders shared by the API tests."""

import uuid

from craftmatch.common.enums import UserRole
from craftmatch.common.security import create_access_token
from craftmatch.db.models.generated_image import GeneratedImage
from craftmatch.db.models.user import User


async def make_user(db_session, role: UserRole, prefix: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{prefix}_{uuid.uuid4().hex[:8]}@test.com",
        role=role.value,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id), email=user.email)}"}


async def make_generated_image(db_session, user: User) -> GeneratedImage:
    image = GeneratedImage(
        user_id=user.id,
        prompt="Oak dining table for six people",
        enhanced_positive_prompt="oak dining table, studio lighting",
        enhanced_negative_prompt="blurry",
        image_url=f"/storage/generated-images/{user.id}/{uuid.uuid4().hex}.png",
    )
    db_session.add(image)
    await db_session.flush()
    await db_session.refresh(image)
    return image


def project_payload(image, category, material, **overrides) -> dict:
    payload = {
        "generated_image_id": str(image.id),
        "category_id": str(category.id),
        "material_id": str(material.id),
        "dimensions": "180x90x75 cm",
        "budget_range": "2000-3000 PLN",
    }
    payload.update(overrides)
    return payload


def attachment(
    name: str = "offer.pdf",
    content: bytes = b"%PDF-1.4 offer",
    content_type: str = "application/pdf",
) -> dict:
    return {"attachment": (name, content, content_type)}


async def submit_proposal(client, headers, project_id, price="2500", message=None):
    data = {"price": price}
    if message:
        data["message"] = message
    return await client.post(
        f"/api/projects/{project_id}/proposals",
        headers=headers,
        data=data,
        files=attachment(),
    )
