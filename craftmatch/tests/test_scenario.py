"""End-to-end marketplace flow: image -> project -> offers -> acceptance -> review."""

import pytest

from craftmatch.tests.factories import submit_proposal


@pytest.mark.asyncio
async def test_commission_lifecycle(
    client,
    client_headers,
    artisan_headers,
    second_artisan_headers,
    artisan_user,
    category,
    material,
):
    # Client renders a design and publishes it as a project
    image = await client.post(
        "/api/images/generate",
        headers=client_headers,
        json={"prompt": "Rustykalna ława z drewna sosnowego, 120 cm"},
    )
    assert image.status_code == 201
    image = image.json()

    project = await client.post(
        "/api/projects",
        headers=client_headers,
        json={
            "generated_image_id": image["id"],
            "category_id": str(category.id),
            "material_id": str(material.id),
        },
    )
    assert project.status_code == 201
    project_id = project.json()["id"]

    # The image is now marked as used
    listing = await client.get("/api/images/generated", headers=client_headers)
    assert listing.json()["data"][0]["is_used"] is True

    # Artisans make offers, one per artisan
    first = await submit_proposal(client, artisan_headers, project_id, price="2500")
    assert first.status_code == 201
    duplicate = await submit_proposal(client, artisan_headers, project_id, price="3000")
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "PROPOSAL_ALREADY_EXISTS"
    second = await submit_proposal(client, second_artisan_headers, project_id, price="2300")
    assert second.status_code == 201

    # Client accepts the first offer
    accepted = await client.post(
        f"/api/projects/{project_id}/accept-proposal",
        headers=client_headers,
        json={"proposal_id": first.json()["id"]},
    )
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "in_progress"
    assert accepted.json()["accepted_price"] == 2500.0

    # No going back to open, and no more offers
    reopened = await client.patch(
        f"/api/projects/{project_id}/status", headers=client_headers, json={"status": "open"}
    )
    assert reopened.status_code == 400
    assert reopened.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    late = await submit_proposal(client, second_artisan_headers, project_id)
    assert late.status_code == 403

    # Only the winning artisan keeps access to the project
    assert (await client.get(f"/api/projects/{project_id}", headers=artisan_headers)).status_code == 200
    assert (await client.get(f"/api/projects/{project_id}", headers=second_artisan_headers)).status_code == 403

    # Work is completed and both sides review each other
    completed = await client.patch(
        f"/api/projects/{project_id}/status", headers=client_headers, json={"status": "completed"}
    )
    assert completed.status_code == 200

    review = await client.post(
        f"/api/projects/{project_id}/reviews", headers=client_headers, json={"rating": 5, "comment": "Świetna robota"}
    )
    assert review.status_code == 201
    review = await client.post(f"/api/projects/{project_id}/reviews", headers=artisan_headers, json={"rating": 4})
    assert review.status_code == 201

    # Artisan publishes a profile and shows the rating
    profile = await client.put(
        "/api/artisans/me",
        headers=artisan_headers,
        json={"company_name": "Stolarnia Wiśniewski", "nip": "9876543210", "is_public": True},
    )
    assert profile.status_code == 200
    public = await client.get(f"/api/artisans/{artisan_user.id}")
    assert public.status_code == 200
    assert public.json()["average_rating"] == 5.0
    assert public.json()["total_reviews"] == 1

    # Finally the project is archived
    closed = await client.patch(
        f"/api/projects/{project_id}/status", headers=client_headers, json={"status": "closed"}
    )
    assert closed.status_code == 200
    assert closed.json()["status"] == "closed"
