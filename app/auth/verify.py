"""
verify.py
---------
Purpose:
    JWT verification using Supabase JWKS (ES256).

Notes:
    - Fetches JWKS from Supabase and caches keys.
    - `get_caller_id` resolves the authenticated user id for feature routes;
      a missing or invalid token raises AuthenticationRequired.
"""

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import settings
from app.features.proximity_graph.domain import AuthenticationRequired
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SUPABASE_AUDIENCE = "authenticated"

_jwk_client = PyJWKClient(settings.jwks_url())
_security = HTTPBearer(auto_error=False)


def verify_jwt(token: str) -> dict:
    try:
        signing_key = _jwk_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience=SUPABASE_AUDIENCE,
            options={"verify_exp": True},
        )
    except (jwt.PyJWTError, jwt.PyJWKClientError) as e:
        logger.info("Rejected bearer token", error=str(e), error_type=type(e).__name__)
        raise AuthenticationRequired("Invalid authentication token") from e


def auth_dependency(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired()
    return verify_jwt(credentials.credentials)


def get_caller_id(claims: dict = Depends(auth_dependency)) -> str:
    caller_id = claims.get("sub")
    if not caller_id:
        raise AuthenticationRequired("Token has no subject")
    return caller_id
