"""Authentication (bearer token verification) and permission dependencies.

Tokens are issued by the external identity provider; this module only
verifies them and maps the subject onto a Principal.
"""
import logging
import time
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .domain_errors import Unauthenticated
from .models import User
from .schemas import Principal
from .security import require_permission

logger = logging.getLogger(__name__)

# Bearer token scheme; missing credentials are reported as Unauthenticated below.
security = HTTPBearer(auto_error=False)


def _invalid_credentials() -> Unauthenticated:
    return Unauthenticated("Could not validate credentials", code="INVALID_TOKEN")


def decode_token(token: str) -> dict:
    """Decode and verify a JWT access token."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise _invalid_credentials()

    now = int(time.time())
    exp = payload.get("exp")
    if exp is None:
        raise _invalid_credentials()
    try:
        exp_int = int(exp)
    except (TypeError, ValueError):
        raise _invalid_credentials()
    if now > exp_int + int(settings.JWT_LEEWAY_SECONDS):
        raise Unauthenticated("Token expired", code="TOKEN_EXPIRED")

    iat = payload.get("iat")
    if iat is not None:
        try:
            iat_int = int(iat)
        except (TypeError, ValueError):
            raise _invalid_credentials()
        # Reject tokens issued in the future (clock skew / forged tokens).
        if iat_int > now + int(settings.JWT_LEEWAY_SECONDS):
            raise _invalid_credentials()
    return payload


def _parse_token_subject(payload: dict) -> UUID:
    """Parse and validate JWT subject as UUID."""
    sub = payload.get("sub")
    if not sub:
        raise _invalid_credentials()
    try:
        return UUID(str(sub))
    except ValueError:
        raise _invalid_credentials()


def principal_from_user(user: User) -> Principal:
    return Principal(
        id=user.id,
        role=user.role,
        organization_id=user.org_id,
        is_active=bool(user.is_active),
        email=user.email,
        name=user.name,
    )


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the authenticated principal for the request.

    Inactive users are returned as-is; the authorization guard rejects them.
    """
    if credentials is None:
        raise Unauthenticated("Authentication required")

    payload = decode_token(credentials.credentials)
    if payload.get("type", "access") != "access":
        raise Unauthenticated("Invalid token type", code="INVALID_TOKEN")

    user_id = _parse_token_subject(payload)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info("Token subject %s does not resolve to a user", user_id)
        raise Unauthenticated("User not found", code="INVALID_TOKEN")
    return principal_from_user(user)


# Permission checks
class PermissionChecker:
    """Check principal permissions based on role."""

    def __init__(self, required_permission: str):
        self.required_permission = required_permission

    def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        require_permission(principal, self.required_permission)
        return principal
