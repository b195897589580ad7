"""File payloads handed from multipart endpoints to services."""

from dataclasses import dataclass

from fastapi import UploadFile

from craftmatch.common.exceptions import BadRequestError
from craftmatch.config import settings

ATTACHMENT_TYPES = {"application/pdf", "image/jpeg", "image/png"}
PORTFOLIO_TYPES = {"image/jpeg", "image/png", "image/webp"}

EXTENSIONS = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


async def read_upload(file: UploadFile) -> UploadedFile:
    content = await file.read()
    return UploadedFile(
        filename=file.filename or "unnamed",
        content_type=file.content_type or "application/octet-stream",
        content=content,
    )


def validate_upload(
    file: UploadedFile,
    allowed_types: set[str],
    max_bytes: int | None = None,
) -> None:
    max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
    if file.size > max_bytes:
        raise BadRequestError(
            f"File exceeds max size of {max_bytes // (1024 * 1024)} MB", code="FILE_TOO_LARGE"
        )
    if file.content_type not in allowed_types:
        allowed = ", ".join(sorted(EXTENSIONS[t] for t in allowed_types))
        raise BadRequestError(
            f"File type '{file.content_type}' is not allowed (allowed: {allowed})", code="INVALID_FILE_TYPE"
        )
