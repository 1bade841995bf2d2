import pytest

from app.auth.verify import auth_dependency
from app.config import settings
from tests.fakes import (
    FakeAlertRepository,
    FakeDeviceRepository,
    FakeGroupRepository,
    FakeRedis,
)


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def hashing_secret(monkeypatch):
    monkeypatch.setattr(settings, "HASHING_SECRET", "test-hashing-secret-0123456789")
    return settings.HASHING_SECRET


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def group_repo():
    return FakeGroupRepository()


@pytest.fixture
def alert_repo():
    return FakeAlertRepository()


@pytest.fixture
def device_repo():
    return FakeDeviceRepository()
