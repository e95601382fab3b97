"""Resolve the calling user from a Clerk session token.

Clerk signs session tokens as RS256 JWTs. The frontend forwards the token in
the ``Authorization: Bearer <token>`` header and the ``sub`` claim is the
user id every query is scoped by.
"""
from functools import lru_cache
from typing import Optional

import jwt
import structlog
from fastapi import Header, HTTPException

from backend.config import get_settings

logger = structlog.get_logger(__name__)


class NotAuthenticatedError(Exception):
    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


@lru_cache
def get_jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url)


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise NotAuthenticatedError()

    # Extract token from "Bearer <token>"
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise NotAuthenticatedError("Invalid authorization header format")
    return parts[1]


def verify_session_token(token: str, jwks_url: Optional[str] = None, issuer: Optional[str] = None) -> str:
    """Verify the token signature and return the user id (``sub``)."""
    settings = get_settings()
    jwks_url = jwks_url or settings.clerk_jwks_url
    issuer = issuer or settings.clerk_issuer

    if not jwks_url:
        logger.error("CLERK_JWKS_URL is not set. Cannot verify session tokens.")
        raise NotAuthenticatedError()

    options = {"require": ["exp", "sub"], "verify_aud": False}
    try:
        signing_key = get_jwks_client(jwks_url).get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=issuer,
            options=options,
        )
    except jwt.PyJWTError as e:
        logger.info("Rejected session token", reason=str(e))
        raise NotAuthenticatedError() from e

    user_id = claims.get("sub")
    if not user_id:
        raise NotAuthenticatedError()
    return user_id


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    try:
        return verify_session_token(extract_bearer_token(authorization))
    except NotAuthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
