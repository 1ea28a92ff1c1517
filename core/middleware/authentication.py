"""
Identity resolution for incoming requests.

Turns a bearer credential into a Principal:
1. Extracts the token from the Authorization header
2. Verifies signature and expiry
3. Loads the referenced identity from the store

The resolved principal is returned to the route as a dependency value; nothing
is attached to the request object and nothing is cached between requests.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Unauthenticated
from core.security import verify_jwt_token
from database.engine import get_db
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)

# auto_error is off so a missing header can soft-fail on optional paths
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated actor for a single request."""

    id: int
    role: UserRole
    email: str
    name: str

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role, email=user.email, name=user.name)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class TokenExpiredError(Unauthenticated):
    """Raised when JWT token has expired."""

    code = "TOKEN_EXPIRED"
    default_message = "Authentication token has expired"


class TokenInvalidError(Unauthenticated):
    """Raised when JWT token is missing or invalid."""

    code = "TOKEN_INVALID"
    default_message = "Invalid authentication token"


class UserNotFoundError(Unauthenticated):
    """Raised when a valid token references no identity."""

    code = "USER_NOT_FOUND"
    default_message = "User account not found"


async def _resolve(db: AsyncSession, token: Optional[str]) -> Principal:
    if not token:
        raise TokenInvalidError("No authentication token provided")

    try:
        payload = verify_jwt_token(token)
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {str(e)}")

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise TokenInvalidError("Token missing user_id")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UserNotFoundError(f"User {user_id} not found")

    return Principal.from_user(user)


async def resolve_principal(
    db: AsyncSession,
    token: Optional[str],
    required: bool = True,
) -> Optional[Principal]:
    """
    Resolve a bearer token to a principal.

    Args:
        db: Database session
        token: Raw bearer token, or None when the header is absent
        required: Fail with Unauthenticated instead of returning None

    Returns:
        The principal, or None on optional paths when resolution fails

    Raises:
        Unauthenticated: On required paths when the token is missing,
            invalid, expired, or references no user
    """
    try:
        return await _resolve(db, token)
    except Unauthenticated as e:
        if required:
            logger.warning(f"Authentication failed: {e.code}")
            raise
        return None


def _token_from(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Dependency for routes that require authentication."""
    return await resolve_principal(db, _token_from(credentials), required=True)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Principal]:
    """Dependency for routes that work both authenticated and anonymous."""
    return await resolve_principal(db, _token_from(credentials), required=False)
