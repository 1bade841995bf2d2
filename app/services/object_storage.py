"""
Supabase Storage client for uploaded contact exports.

Uses the service-role key, so callers are responsible for checking that the
requesting user owns the object path before touching it.
"""

from urllib.parse import quote

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StorageObjectNotFound(StorageError):
    pass


class ObjectStorageClient:
    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client
        self._owns_client = client is None

    async def initialize(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.STORAGE_TIMEOUT_SECONDS)
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{settings.storage_base_url()}/object/{quote(bucket)}/{quote(path)}"

    def _headers(self) -> dict[str, str]:
        key = settings.SUPABASE_SERVICE_ROLE_KEY
        return {"Authorization": f"Bearer {key}", "apikey": key}

    async def download(self, bucket: str, path: str) -> bytes:
        if self._client is None:
            await self.initialize()

        try:
            response = await self._client.get(self._object_url(bucket, path), headers=self._headers())
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage download failed: {exc}") from exc

        if response.status_code in (400, 404) and _is_not_found(response):
            raise StorageObjectNotFound(f"Object not found: {bucket}/{path}", response.status_code)
        if response.status_code != 200:
            raise StorageError(
                f"Storage download failed with status {response.status_code}",
                response.status_code,
            )

        logger.debug("Storage object downloaded", bucket=bucket, size_bytes=len(response.content))
        return response.content

    async def delete(self, bucket: str, path: str, *, ignore_not_found: bool = True) -> bool:
        """Delete one object. Returns False when it was already gone."""
        if self._client is None:
            await self.initialize()

        try:
            response = await self._client.delete(
                self._object_url(bucket, path), headers=self._headers()
            )
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage delete failed: {exc}") from exc

        if response.status_code in (400, 404) and _is_not_found(response):
            if ignore_not_found:
                return False
            raise StorageObjectNotFound(f"Object not found: {bucket}/{path}", response.status_code)
        if response.status_code != 200:
            raise StorageError(
                f"Storage delete failed with status {response.status_code}",
                response.status_code,
            )
        return True


def _is_not_found(response: httpx.Response) -> bool:
    # Supabase reports missing objects as 400 with a "not_found" error body
    if response.status_code == 404:
        return True
    try:
        body = response.json()
    except ValueError:
        return False
    error = str(body.get("error", "")).lower() if isinstance(body, dict) else ""
    status = str(body.get("statusCode", "")) if isinstance(body, dict) else ""
    return "not_found" in error or "not found" in error or status == "404"


object_storage = ObjectStorageClient()
