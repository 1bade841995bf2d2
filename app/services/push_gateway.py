"""
Push gateway client for Firebase Cloud Messaging (HTTP v1).

One multicast call sends the same notification to every device token of a
user and reports a per-token outcome. Outcomes are informational: callers log
them and prune tokens the gateway reports as unregistered.

Authentication uses a service-account JWT assertion (RS256) exchanged for a
short-lived OAuth access token, cached until shortly before it expires.
"""

import asyncio
import time
from dataclasses import dataclass, field

import httpx
import jwt

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
ASSERTION_LIFETIME_SECONDS = 3600
TOKEN_REFRESH_MARGIN_SECONDS = 60

# Error codes meaning the device token will never work again
STALE_TOKEN_ERRORS = frozenset({"UNREGISTERED", "NOT_FOUND"})


class PushGatewayError(Exception):
    """Raised when the gateway cannot be used at all (config, auth)."""


@dataclass(slots=True)
class SendResult:
    token: str
    success: bool
    message_id: str | None = None
    error_code: str | None = None


@dataclass(slots=True)
class BatchResponse:
    responses: list[SendResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.responses if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.responses if not r.success)

    def stale_tokens(self) -> list[str]:
        return [r.token for r in self.responses if r.error_code in STALE_TOKEN_ERRORS]


class FcmPushGateway:
    """Minimal async FCM client built on httpx."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client
        self._owns_client = client is None
        self._access_token: str | None = None
        self._access_token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.FCM_TIMEOUT_SECONDS)
            self._owns_client = True
        if not settings.fcm_configured():
            logger.warning("FCM credentials not configured - push delivery disabled")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def send_multicast(
        self,
        tokens: list[str],
        *,
        title: str,
        body: str,
        data: dict[str, str] | None = None,
    ) -> BatchResponse:
        """Send one notification to every token; never raises per-token errors."""
        if not tokens:
            return BatchResponse()
        if not settings.fcm_configured():
            raise PushGatewayError("FCM credentials not configured")
        if self._client is None:
            await self.initialize()

        access_token = await self._get_access_token()
        payload_data = {key: str(value) for key, value in (data or {}).items()}

        results = await asyncio.gather(
            *(
                self._send_one(token, access_token, title=title, body=body, data=payload_data)
                for token in tokens
            )
        )
        return BatchResponse(responses=list(results))

    async def _send_one(
        self,
        token: str,
        access_token: str,
        *,
        title: str,
        body: str,
        data: dict[str, str],
    ) -> SendResult:
        message = {
            "message": {
                "token": token,
                "notification": {"title": title, "body": body},
                "data": data,
            }
        }
        try:
            response = await self._client.post(
                settings.fcm_send_url(),
                json=message,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("FCM request failed", error=str(exc), error_type=type(exc).__name__)
            return SendResult(token=token, success=False, error_code="UNAVAILABLE")

        if response.status_code == 200:
            return SendResult(token=token, success=True, message_id=response.json().get("name"))

        return SendResult(token=token, success=False, error_code=_error_code(response))

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            now = time.time()
            if self._access_token and now < self._access_token_expires_at:
                return self._access_token

            assertion = jwt.encode(
                {
                    "iss": settings.FCM_CLIENT_EMAIL,
                    "scope": FCM_SCOPE,
                    "aud": settings.FCM_TOKEN_URI,
                    "iat": int(now),
                    "exp": int(now) + ASSERTION_LIFETIME_SECONDS,
                },
                settings.FCM_PRIVATE_KEY.replace("\\n", "\n"),
                algorithm="RS256",
            )

            try:
                response = await self._client.post(
                    settings.FCM_TOKEN_URI,
                    data={
                        "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                        "assertion": assertion,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise PushGatewayError(f"FCM token exchange failed: {exc}") from exc

            payload = response.json()
            self._access_token = payload["access_token"]
            expires_in = int(payload.get("expires_in", ASSERTION_LIFETIME_SECONDS))
            self._access_token_expires_at = now + expires_in - TOKEN_REFRESH_MARGIN_SECONDS

            logger.debug("FCM access token refreshed", expires_in=expires_in)
            return self._access_token


def _error_code(response: httpx.Response) -> str:
    """Pull the most specific FCM error code out of an error response."""
    try:
        error = response.json().get("error", {})
    except ValueError:
        return f"HTTP_{response.status_code}"

    for detail in error.get("details", []):
        code = detail.get("errorCode")
        if code:
            return code
    return error.get("status") or f"HTTP_{response.status_code}"


push_gateway = FcmPushGateway()
