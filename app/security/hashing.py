"""
Deterministic HMAC-SHA256 helpers for contact identifier pseudonymization.

Raw emails and phone numbers from contact exports never leave transient
memory; only their keyed digests are stored as contact tokens. The digest
key is deployment-wide so that two owners who know the same contact produce
the same token, which is what the graph intersection relies on.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from app.config import settings

SECRET_MIN_LENGTH = 16  # keep configurable but catch obvious misconfiguration

_PHONE_STRIP_RE = re.compile(r"[^\d+]")

__all__ = [
    "compute_hmac",
    "normalize_email",
    "normalize_phone",
    "hash_email",
    "hash_phone",
    "HashingError",
]


class HashingError(RuntimeError):
    """Raised when hashing prerequisites are not satisfied."""


def _secret_bytes() -> bytes:
    secret = getattr(settings, "HASHING_SECRET", None)
    if not secret:
        raise HashingError("HASHING_SECRET is not configured")
    if len(secret) < SECRET_MIN_LENGTH:
        raise HashingError("HASHING_SECRET is too short; please rotate it")
    return secret.encode("utf-8")


def compute_hmac(value: str, *, namespace: str) -> str:
    """
    Compute a namespaced hex HMAC-SHA256 digest.

    Args:
        value: Raw string value to hash (will be normalized by caller).
        namespace: Logical namespace to avoid cross-kind collisions.
    """
    payload = value or ""
    scoped = f"{namespace}:{payload}"
    digest = hmac.new(_secret_bytes(), scoped.encode("utf-8"), hashlib.sha256)
    return digest.hexdigest()


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def normalize_phone(phone: str | None) -> str:
    """Keep digits and a single leading plus sign."""
    raw = (phone or "").strip()
    if not raw:
        return ""
    digits = _PHONE_STRIP_RE.sub("", raw)
    leading_plus = digits.startswith("+")
    digits = digits.replace("+", "")
    if not digits:
        return ""
    return f"+{digits}" if leading_plus else digits


def hash_email(email: str | None) -> str:
    """Deterministically hash a single email address."""
    return compute_hmac(normalize_email(email), namespace="email")


def hash_phone(phone: str | None) -> str:
    """Deterministically hash a single phone number."""
    return compute_hmac(normalize_phone(phone), namespace="phone")
