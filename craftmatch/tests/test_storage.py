import re

import pytest

from craftmatch.common.enums import StorageBucket
from craftmatch.common.exceptions import BadRequestError
from craftmatch.common.uploads import ATTACHMENT_TYPES, PORTFOLIO_TYPES, UploadedFile, validate_upload
from craftmatch.config import settings
from craftmatch.integrations.storage import StorageClient, build_object_path, sanitize_extension


def test_sanitize_extension():
    assert sanitize_extension("Offer.PDF", "bin") == "pdf"
    assert sanitize_extension("archive.tar.gz", "bin") == "gz"
    assert sanitize_extension("no_extension", "pdf") == "pdf"
    assert sanitize_extension("weird.p/d\\f", "pdf") == "pdf"
    assert sanitize_extension(None, "png") == "png"


def test_build_object_path():
    path = build_object_path("user-1", "project-2", extension="pdf")
    assert re.fullmatch(r"user-1/project-2/\d{13}-[0-9a-f]{8}\.pdf", path)


def test_local_public_url_round_trip():
    client = StorageClient()
    url = client.public_url(StorageBucket.PORTFOLIO_IMAGES, "u1/a.png")
    assert url == f"{settings.STORAGE_PUBLIC_PREFIX}/portfolio-images/u1/a.png"
    assert StorageClient.path_from_url(StorageBucket.PORTFOLIO_IMAGES, url) == "u1/a.png"
    assert StorageClient.path_from_url(StorageBucket.GENERATED_IMAGES, url) is None


def test_remote_public_url_round_trip(monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "remote")
    monkeypatch.setattr(settings, "AUTH_PROVIDER_URL", "https://project.example.co/")
    client = StorageClient()
    url = client.public_url(StorageBucket.PROPOSAL_ATTACHMENTS, "a/b/c.pdf")
    assert url == "https://project.example.co/storage/v1/object/public/proposal-attachments/a/b/c.pdf"
    assert StorageClient.path_from_url(StorageBucket.PROPOSAL_ATTACHMENTS, url) == "a/b/c.pdf"


@pytest.mark.asyncio
async def test_local_upload_and_remove(local_storage):
    client = StorageClient()
    url = await client.upload(StorageBucket.GENERATED_IMAGES, "u1/img.png", b"png", "image/png")
    stored = local_storage / "generated-images" / "u1" / "img.png"
    assert stored.read_bytes() == b"png"
    assert url.endswith("/generated-images/u1/img.png")

    await client.remove(StorageBucket.GENERATED_IMAGES, ["u1/img.png"])
    assert not stored.exists()


def test_validate_upload():
    validate_upload(UploadedFile("a.pdf", "application/pdf", b"x"), ATTACHMENT_TYPES)

    with pytest.raises(BadRequestError) as exc:
        validate_upload(UploadedFile("a.webp", "image/webp", b"x"), ATTACHMENT_TYPES)
    assert exc.value.code == "INVALID_FILE_TYPE"

    with pytest.raises(BadRequestError) as exc:
        validate_upload(UploadedFile("a.png", "image/png", b"x" * 11), PORTFOLIO_TYPES, max_bytes=10)
    assert exc.value.code == "FILE_TOO_LARGE"
