import pytest

from app.security import hashing


def _configure_secret(monkeypatch, secret: str = "a" * 32):
    monkeypatch.setattr("app.security.hashing.settings.HASHING_SECRET", secret, raising=False)


def test_compute_hmac_is_deterministic(monkeypatch):
    _configure_secret(monkeypatch)
    first = hashing.compute_hmac("value", namespace="test")
    second = hashing.compute_hmac("value", namespace="test")
    assert first == second


def test_namespaces_change_output(monkeypatch):
    _configure_secret(monkeypatch)
    generic = hashing.compute_hmac("15551234567", namespace="generic")
    email_hash = hashing.compute_hmac("15551234567", namespace="email")
    phone_hash = hashing.hash_phone("15551234567")
    assert len({generic, email_hash, phone_hash}) == 3


def test_same_contact_hashes_identically_for_every_owner(monkeypatch):
    _configure_secret(monkeypatch)
    assert hashing.hash_email(" Alice@Example.com ") == hashing.hash_email("alice@example.com")


def test_phone_normalization_keeps_digits_and_leading_plus():
    assert hashing.normalize_phone("+1 (555) 123-4567") == "+15551234567"
    assert hashing.normalize_phone("555.123.4567") == "5551234567"
    assert hashing.normalize_phone("  ") == ""
    assert hashing.normalize_phone("ext +") == ""


def test_exports_resolve_to_module_attributes():
    assert set(hashing.__all__) <= set(dir(hashing))


def test_missing_secret_raises(monkeypatch):
    monkeypatch.setattr("app.security.hashing.settings.HASHING_SECRET", "", raising=False)
    with pytest.raises(hashing.HashingError):
        hashing.compute_hmac("value", namespace="test")


def test_too_short_secret_raises(monkeypatch):
    monkeypatch.setattr("app.security.hashing.settings.HASHING_SECRET", "short", raising=False)
    with pytest.raises(hashing.HashingError):
        hashing.compute_hmac("value", namespace="test")
