"""
Auth utilities for the TrainerHub API.

Verifies the hosted backend's HS256 access tokens and extracts the user id.
Falls back to the X-User-Id header when no JWT secret is configured (local
dev and tests).
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Header, Request

from trainerhub.core.config import settings
from trainerhub.core.errors import AuthenticationError

logger = logging.getLogger("trainerhub")

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(hours=1)


def issue_access_token(user_id: str, secret: str, email: Optional[str] = None, ttl: timedelta = TOKEN_TTL) -> str:
    """Mint a token the way the hosted backend does (used by the in-memory auth backend)."""
    now = datetime.now(timezone.utc)
    claims = {"sub": user_id, "iat": now, "exp": now + ttl, "role": "authenticated"}
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_access_token(token: str, secret: Optional[str] = None) -> str:
    """
    Verify an access token and return its 'sub' claim.

    Raises:
        AuthenticationError: expired, tampered or malformed token
    """
    key = secret or settings.BAAS_JWT_SECRET
    if not key:
        raise AuthenticationError("Token verification is not configured")
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[ALGORITHM],
            options={"verify_signature": True, "verify_exp": True, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthenticationError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Token has no subject")
    return user_id


def bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Dev/test user id when no JWT secret is configured"),
) -> Optional[str]:
    """
    Extract the acting user id from the request, or None for anonymous.

    Priority:
    1. Bearer JWT (when BAAS_JWT_SECRET is configured)
    2. X-User-Id header (only without a JWT secret)
    """
    token = bearer_token(request)
    if settings.BAAS_JWT_SECRET:
        if token:
            return verify_access_token(token)
        return None
    return x_user_id or None
