import httpx
import pytest

from app.config import settings
from app.services.object_storage import ObjectStorageClient, StorageError, StorageObjectNotFound


@pytest.fixture
def storage_settings(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_URL", "https://proj.supabase.test")
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_ROLE_KEY", "service-role")


def _client(handler):
    return ObjectStorageClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_download_returns_bytes_with_service_role_headers(storage_settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"Email Address\na@x.com\n")

    data = await _client(handler).download("uploads", "linkedin_uploads/u1/c.csv")

    assert data.startswith(b"Email Address")
    request = seen[0]
    assert request.url.path == "/storage/v1/object/uploads/linkedin_uploads/u1/c.csv"
    assert request.headers["Authorization"] == "Bearer service-role"
    assert request.headers["apikey"] == "service-role"


@pytest.mark.asyncio
async def test_download_missing_object_raises_not_found(storage_settings):
    def handler(request):
        return httpx.Response(400, json={"statusCode": "404", "error": "not_found"})

    with pytest.raises(StorageObjectNotFound):
        await _client(handler).download("uploads", "linkedin_uploads/u1/gone.csv")


@pytest.mark.asyncio
async def test_download_server_error_raises_storage_error(storage_settings):
    def handler(request):
        return httpx.Response(500, text="boom")

    with pytest.raises(StorageError) as exc_info:
        await _client(handler).download("uploads", "linkedin_uploads/u1/c.csv")

    assert exc_info.value.status_code == 500
    assert not isinstance(exc_info.value, StorageObjectNotFound)


@pytest.mark.asyncio
async def test_delete_ignores_missing_object_by_default(storage_settings):
    def handler(request):
        assert request.method == "DELETE"
        return httpx.Response(404, json={"error": "not_found"})

    client = _client(handler)

    assert await client.delete("uploads", "linkedin_uploads/u1/c.csv") is False
    with pytest.raises(StorageObjectNotFound):
        await client.delete("uploads", "linkedin_uploads/u1/c.csv", ignore_not_found=False)


@pytest.mark.asyncio
async def test_delete_success(storage_settings):
    def handler(request):
        return httpx.Response(200, json=[{"name": "c.csv"}])

    assert await _client(handler).delete("uploads", "linkedin_uploads/u1/c.csv") is True
