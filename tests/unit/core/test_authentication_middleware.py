"""
Tests for identity resolution.

Tests:
- Required paths fail with Unauthenticated on every resolution failure
- Optional paths degrade to an anonymous (None) principal
- Principals are resolved fresh from the store on each call
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from core.errors import Unauthenticated
from core.middleware.authentication import (
    Principal,
    TokenExpiredError,
    TokenInvalidError,
    UserNotFoundError,
    _token_from,
    get_current_principal,
    get_optional_principal,
    resolve_principal,
)
from core.security import create_access_token
from database.models.users import UserRole


class TestResolvePrincipalRequired:
    """Required resolution."""

    @pytest.mark.asyncio
    async def test_valid_token_resolves_principal(self, db, factory):
        user = await factory.user(UserRole.EMPLOYER, name="Erin")

        principal = await resolve_principal(db, create_access_token(user.id))

        assert principal == Principal(
            id=user.id, role=UserRole.EMPLOYER, email=user.email, name="Erin"
        )

    @pytest.mark.asyncio
    async def test_missing_token(self, db):
        with pytest.raises(TokenInvalidError):
            await resolve_principal(db, None)

    @pytest.mark.asyncio
    async def test_expired_token(self, db, factory):
        user = await factory.user()
        token = create_access_token(user.id, expires_delta=timedelta(seconds=-5))

        with pytest.raises(TokenExpiredError) as exc_info:
            await resolve_principal(db, token)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_tampered_token(self, db, factory):
        user = await factory.user()
        token = create_access_token(user.id) + "tampered"

        with pytest.raises(TokenInvalidError):
            await resolve_principal(db, token)

    @pytest.mark.asyncio
    async def test_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            await resolve_principal(db, create_access_token(999))

    @pytest.mark.asyncio
    async def test_all_failures_are_unauthenticated(self, db):
        """Callers can catch the base class for every failure kind."""
        for token in (None, "garbage", create_access_token(999)):
            with pytest.raises(Unauthenticated):
                await resolve_principal(db, token)

    @pytest.mark.asyncio
    async def test_no_cache_between_calls(self, db, factory):
        """A role change in the store is visible on the next resolution."""
        user = await factory.user(UserRole.JOBSEEKER)
        token = create_access_token(user.id)

        first = await resolve_principal(db, token)
        user.role = UserRole.EMPLOYER
        await db.commit()
        second = await resolve_principal(db, token)

        assert first.role == UserRole.JOBSEEKER
        assert second.role == UserRole.EMPLOYER


class TestResolvePrincipalOptional:
    """Optional resolution never raises."""

    @pytest.mark.asyncio
    async def test_missing_token_is_anonymous(self, db):
        assert await resolve_principal(db, None, required=False) is None

    @pytest.mark.asyncio
    async def test_invalid_token_is_anonymous(self, db):
        assert await resolve_principal(db, "garbage", required=False) is None

    @pytest.mark.asyncio
    async def test_unknown_user_is_anonymous(self, db):
        token = create_access_token(12345)
        assert await resolve_principal(db, token, required=False) is None

    @pytest.mark.asyncio
    async def test_valid_token_still_resolves(self, db, factory):
        user = await factory.user()
        principal = await resolve_principal(db, create_access_token(user.id), required=False)
        assert principal.id == user.id


class TestDependencies:
    """FastAPI dependency wrappers."""

    def test_token_from_bearer_credentials(self):
        creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials="abc")
        assert _token_from(creds) == "abc"

    def test_token_from_other_scheme(self):
        creds = HTTPAuthorizationCredentials(scheme="Basic", credentials="abc")
        assert _token_from(creds) is None

    def test_token_from_missing_header(self):
        assert _token_from(None) is None

    @pytest.mark.asyncio
    async def test_get_current_principal_requires_token(self, db):
        with pytest.raises(Unauthenticated):
            await get_current_principal(credentials=None, db=db)

    @pytest.mark.asyncio
    async def test_get_optional_principal_allows_anonymous(self, db):
        assert await get_optional_principal(credentials=None, db=db) is None

    @pytest.mark.asyncio
    async def test_required_failure_is_logged(self, db):
        with patch("core.middleware.authentication.logger") as mock_logger:
            with pytest.raises(Unauthenticated):
                await resolve_principal(db, None)
        mock_logger.warning.assert_called_once()


class TestPrincipal:
    def test_is_admin(self):
        assert Principal(1, UserRole.ADMIN, "a@x.io", "A").is_admin
        assert not Principal(1, UserRole.EMPLOYER, "e@x.io", "E").is_admin

    def test_immutable(self):
        principal = Principal(1, UserRole.JOBSEEKER, "j@x.io", "J")
        with pytest.raises(AttributeError):
            principal.role = UserRole.ADMIN
