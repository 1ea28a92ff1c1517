"""
Authorization checks for role gates and resource ownership.

This module implements:
1. Role gates (exact role match, no hierarchy)
2. Ownership checks with admin override
3. Owner strategies per resource class and operation
4. Resource fetchers handed to the ownership check by callers

Neither check recovers from failure; both raise and leave the mapping to an
HTTP response to the error handlers.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import Forbidden, NotFound
from core.middleware.authentication import Principal, get_current_principal
from database.models.applications import Application
from database.models.jobs import Job
from database.models.users import UserRole

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchResource = Callable[[int], Awaitable[Optional[T]]]
OwnerOf = Callable[[Any], int]


class InsufficientPermissions(Forbidden):
    """Raised when the principal's role does not match the gate."""

    code = "INSUFFICIENT_PERMISSIONS"


class NotResourceOwner(Forbidden):
    """Raised when the principal neither owns the resource nor is an admin."""

    code = "NOT_RESOURCE_OWNER"
    default_message = "Not authorized to access this resource"


# ==================== Role gate ==================== #

def authorize_role(principal: Optional[Principal], required_role: UserRole) -> Principal:
    """
    Allow only principals whose role equals the required role.

    Admin does not satisfy other roles' gates; admin-only routes use
    require_admin.

    Raises:
        InsufficientPermissions: On mismatch or when there is no principal
    """
    if principal is None:
        raise InsufficientPermissions("Authentication required for this action")

    if principal.role != required_role:
        logger.warning(
            f"User {principal.id} with role {principal.role.value} attempted action "
            f"requiring role {required_role.value}"
        )
        raise InsufficientPermissions(
            f"Role {principal.role.value} not authorized. Required: {required_role.value}"
        )

    return principal


def require_role(required_role: UserRole) -> Callable:
    """
    Dependency to require a specific role.

    Args:
        required_role: The only role allowed through

    Returns:
        FastAPI dependency yielding the principal
    """
    async def dependency(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        return authorize_role(principal, required_role)

    return dependency


require_jobseeker = require_role(UserRole.JOBSEEKER)
require_employer = require_role(UserRole.EMPLOYER)
require_admin = require_role(UserRole.ADMIN)


# ==================== Ownership ==================== #

def job_owner(job: Job) -> int:
    """A job is owned by the employer who posted it."""
    return job.posted_by_id


def application_applicant(application: Application) -> int:
    """Owner for editing and withdrawing an application."""
    return application.applicant_id


def application_job_owner(application: Application) -> int:
    """Owner for reviewing an application: the employer of its parent job."""
    return application.job.posted_by_id


async def authorize_ownership(
    principal: Principal,
    resource_id: int,
    fetch_resource: FetchResource[T],
    owner_of: OwnerOf,
) -> T:
    """
    Fetch a resource and check the principal may act on it.

    Absence is reported before any ownership decision.

    Args:
        principal: Authenticated principal
        resource_id: Id of the resource to act on
        fetch_resource: Loads the resource or returns None
        owner_of: Strategy returning the owning user id for this operation

    Returns:
        The fetched resource

    Raises:
        NotFound: If the resource does not exist
        NotResourceOwner: If the principal is neither owner nor admin
    """
    resource = await fetch_resource(resource_id)
    if resource is None:
        raise NotFound("Resource not found")

    if principal.is_admin:
        return resource

    owner_id = owner_of(resource)
    if principal.id == owner_id:
        return resource

    logger.warning(
        f"User {principal.id} denied access to {type(resource).__name__} "
        f"{resource_id} owned by {owner_id}"
    )
    raise NotResourceOwner()


# ==================== Fetchers ==================== #

def fetch_job(db: AsyncSession) -> FetchResource[Job]:
    """Fetcher for jobs bound to a session."""
    async def fetch(job_id: int) -> Optional[Job]:
        return await db.get(Job, job_id)

    return fetch


def fetch_application(db: AsyncSession) -> FetchResource[Application]:
    """Fetcher for applications with their parent job loaded."""
    async def fetch(application_id: int) -> Optional[Application]:
        result = await db.execute(
            select(Application)
            .options(selectinload(Application.job))
            .where(Application.id == application_id)
        )
        return result.scalar_one_or_none()

    return fetch
