"""
Auth utilities for the Repurpose API.

Validates Supabase-issued JWTs (HS256, shared project secret) and extracts
the account id from the `sub` claim. The account row is provisioned on the
first authenticated request.
"""
from dataclasses import dataclass
from typing import Optional
import logging

import jwt
from fastapi import Request

from repurpose.core.config import settings
from repurpose.core.errors import UnauthenticatedError, ServiceUnavailableError
from repurpose.features.accounts.service import get_or_create_account

logger = logging.getLogger("repurpose")


@dataclass(frozen=True)
class Identity:
    """Verified caller identity."""
    account_id: str
    email: str = ""


def verify_supabase_jwt(token: str, secret: Optional[str] = None, audience: Optional[str] = None) -> Identity:
    """
    Verify a Supabase access token and return the caller identity.

    Args:
        token: JWT from the Authorization header (Bearer {token})
        secret: Override for SUPABASE_JWT_SECRET
        audience: Override for SUPABASE_JWT_AUDIENCE

    Raises:
        ServiceUnavailableError 503: No signing secret configured
        UnauthenticatedError 401: Expired or invalid token
    """
    signing_secret = secret or settings.SUPABASE_JWT_SECRET
    if not signing_secret:
        raise ServiceUnavailableError(
            "Authentication is not configured",
            code="auth_unconfigured",
        )

    try:
        payload = jwt.decode(
            token,
            signing_secret,
            algorithms=["HS256"],
            audience=audience or settings.SUPABASE_JWT_AUDIENCE,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise UnauthenticatedError("Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise UnauthenticatedError("Invalid token")

    return Identity(account_id=str(subject), email=payload.get("email") or "")


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def get_current_identity(request: Request) -> Identity:
    """
    FastAPI dependency: require a verified caller.

    After successful verification the account is provisioned if missing,
    so downstream services can assume it exists.
    """
    token = _bearer_token(request)
    if not token:
        raise UnauthenticatedError("Unauthorized")

    identity = verify_supabase_jwt(token)
    get_or_create_account(identity.account_id, identity.email)
    request.state.account_id = identity.account_id
    return identity


def get_current_account_id(request: Request) -> str:
    """FastAPI dependency returning only the verified account id."""
    return get_current_identity(request).account_id
