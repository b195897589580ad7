"""Object storage client.

Writes to the local filesystem for development and to the managed
platform's storage buckets (REST API) otherwise.
"""

from __future__ import annotations

import secrets
import time
import uuid
from pathlib import Path
from urllib.parse import urlparse

import httpx

from craftmatch.common.enums import StorageBucket
from craftmatch.config import settings
from craftmatch.integrations.base import BaseIntegration


class StorageError(Exception):
    pass


def _use_remote() -> bool:
    return settings.STORAGE_BACKEND == "remote"


def sanitize_extension(filename: str | None, default: str) -> str:
    ext = ""
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[-1].lower()
    ext = "".join(ch for ch in ext if ch.isascii() and ch.isalnum())
    return ext or default


def build_object_path(*prefix: str | uuid.UUID, extension: str) -> str:
    """``{prefix...}/{timestamp_ms}-{random}.{ext}``"""
    stamp = int(time.time() * 1000)
    random_part = secrets.token_hex(4)
    parts = [str(p) for p in prefix]
    parts.append(f"{stamp}-{random_part}.{extension}")
    return "/".join(parts)


class StorageClient(BaseIntegration):
    """Bucket storage with a remote backend and a local fallback."""

    def __init__(self) -> None:
        super().__init__("storage", settings.AUTH_PROVIDER_SERVICE_KEY)
        self._local_path = Path(settings.STORAGE_LOCAL_PATH)
        self._base_url = settings.AUTH_PROVIDER_URL.rstrip("/")

    async def health_check(self) -> bool:
        if _use_remote():
            self.logger.info("Storage: remote buckets at %s", self._base_url)
            return True
        self.logger.info("Storage: local mode (%s)", self._local_path)
        return True

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
        }

    def public_url(self, bucket: StorageBucket, path: str) -> str:
        if _use_remote():
            return f"{self._base_url}/storage/v1/object/public/{bucket.value}/{path}"
        return f"{settings.STORAGE_PUBLIC_PREFIX}/{bucket.value}/{path}"

    @staticmethod
    def path_from_url(bucket: StorageBucket, url: str) -> str | None:
        """Recover the object path from a public URL produced by :meth:`public_url`."""
        marker = f"/{bucket.value}/"
        url_path = urlparse(url).path
        if marker not in url_path:
            return None
        return url_path.split(marker, 1)[1] or None

    async def upload(
        self,
        bucket: StorageBucket,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Store ``content`` at ``bucket/path`` and return its public URL."""
        if _use_remote():
            try:
                async with httpx.AsyncClient(timeout=30) as client:
                    resp = await client.post(
                        f"{self._base_url}/storage/v1/object/{bucket.value}/{path}",
                        headers={
                            **self._headers(),
                            "Content-Type": content_type,
                            "Cache-Control": "3600",
                            "x-upsert": "false",
                        },
                        content=content,
                    )
                    resp.raise_for_status()
            except httpx.HTTPError as e:
                self.logger.error("Upload failed | bucket=%s | path=%s | %s", bucket.value, path, e)
                raise StorageError(f"Upload to {bucket.value} failed") from e
            self.logger.info("Remote upload: %s/%s (%d bytes)", bucket.value, path, len(content))
            return self.public_url(bucket, path)

        local_file = self._local_path / bucket.value / path
        try:
            local_file.parent.mkdir(parents=True, exist_ok=True)
            local_file.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Upload to {bucket.value} failed") from e
        self.logger.info("Local upload: %s/%s (%d bytes)", bucket.value, path, len(content))
        return self.public_url(bucket, path)

    async def remove(self, bucket: StorageBucket, paths: list[str]) -> None:
        if not paths:
            return
        if _use_remote():
            try:
                async with httpx.AsyncClient(timeout=30) as client:
                    resp = await client.request(
                        "DELETE",
                        f"{self._base_url}/storage/v1/object/{bucket.value}",
                        headers=self._headers(),
                        json={"prefixes": paths},
                    )
                    resp.raise_for_status()
            except httpx.HTTPError as e:
                raise StorageError(f"Delete from {bucket.value} failed") from e
        else:
            for path in paths:
                try:
                    (self._local_path / bucket.value / path).unlink(missing_ok=True)
                except OSError as e:
                    raise StorageError(f"Delete from {bucket.value} failed") from e
        self.logger.info("Files deleted | bucket=%s | count=%d", bucket.value, len(paths))


def get_storage_client() -> StorageClient:
    return StorageClient()
