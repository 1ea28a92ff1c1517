"""
User service functions: registration, login, profile and admin management.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.config import settings
from core.errors import Conflict, InvalidState, NotFound, Unauthenticated, ValidationFailure
from core.middleware.authentication import Principal
from core.security import (
    AuditAction,
    ResourceType,
    create_access_token,
    hash_password,
    log_audit_event,
    verify_password,
)
from database.engine import commit_or_raise
from database.models.applications import Application
from database.models.jobs import Job, JobStatus
from database.models.notifications import Notification
from database.models.users import SELF_REGISTER_ROLES, User, UserRole

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"bio": "bio", "location": "location", "skills": "skills"}
COMPANY_FIELDS = {
    "name": "company_name",
    "website": "company_website",
    "description": "company_description",
    "location": "company_location",
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password(password: str) -> None:
    if not password or len(password) < settings.min_password_length:
        raise ValidationFailure(
            f"Password must be at least {settings.min_password_length} characters long",
            details={"field": "password"},
        )


async def _create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: UserRole,
    phone: Optional[str] = None,
) -> User:
    if not name or not name.strip():
        raise ValidationFailure("Name is required", details={"field": "name"})
    _check_password(password)

    email = normalize_email(email)
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise Conflict("User already exists")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        phone=phone,
        skills=[],
    )
    db.add(user)
    try:
        await db.flush()
        await commit_or_raise(db)
    except IntegrityError:
        await db.rollback()
        raise Conflict("User already exists")
    return user


async def register_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: Any,
    phone: Optional[str] = None,
) -> Tuple[User, str]:
    """
    Self-registration for jobseekers and employers.

    Returns:
        Tuple of (user, access token)

    Raises:
        ValidationFailure: On a short password or a role outside jobseeker/employer
        Conflict: If the email is already registered
    """
    try:
        role = UserRole(role)
    except ValueError:
        role = None
    if role not in SELF_REGISTER_ROLES:
        raise ValidationFailure(
            "Role must be either jobseeker or employer", details={"field": "role"}
        )

    user = await _create_user(db, name, email, password, role, phone)
    logger.info(f"Registered user {user.id} as {role.value}")
    return user, create_access_token(user.id)


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
    """
    Exchange credentials for an access token.

    Raises:
        Unauthenticated: If the email is unknown or the password is wrong
    """
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    user = result.scalar_one_or_none()

    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise Unauthenticated("Invalid credentials")

    return user, create_access_token(user.id)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


async def update_profile(db: AsyncSession, principal: Principal, data: Dict[str, Any]) -> User:
    """
    Update the caller's own name, phone, profile and company fields.

    Email, role and password are not changeable here.
    """
    user = await get_user(db, principal.id)

    if data.get("name") is not None:
        if not data["name"].strip():
            raise ValidationFailure("Name cannot be empty", details={"field": "name"})
        user.name = data["name"].strip()
    if data.get("phone") is not None:
        user.phone = data["phone"]

    for key, column in PROFILE_FIELDS.items():
        value = (data.get("profile") or {}).get(key)
        if value is not None:
            setattr(user, column, value)
    for key, column in COMPANY_FIELDS.items():
        value = (data.get("company") or {}).get(key)
        if value is not None:
            setattr(user, column, value)

    await commit_or_raise(db)
    return user


# ==================== Admin ==================== #

async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar() or 0


async def get_stats(db: AsyncSession) -> Dict[str, Any]:
    """Platform totals plus the ten most recent jobs."""
    stats = {
        "total_users": await _count(db, select(func.count(User.id))),
        "total_jobseekers": await _count(
            db, select(func.count(User.id)).where(User.role == UserRole.JOBSEEKER)
        ),
        "total_employers": await _count(
            db, select(func.count(User.id)).where(User.role == UserRole.EMPLOYER)
        ),
        "total_jobs": await _count(db, select(func.count(Job.id))),
        "active_jobs": await _count(
            db, select(func.count(Job.id)).where(Job.status == JobStatus.ACTIVE)
        ),
        "total_applications": await _count(db, select(func.count(Application.id))),
    }

    result = await db.execute(
        select(Job).order_by(Job.created_at.desc(), Job.id.desc()).limit(10)
    )
    recent_jobs = [
        {
            "id": job.id,
            "title": job.title,
            "company": job.company,
            "location": job.location,
            "type": job.job_type.value,
            "status": job.status.value,
            "created_at": job.created_at.isoformat() if job.created_at else None,
        }
        for job in result.scalars().all()
    ]
    return {"stats": stats, "recent_jobs": recent_jobs}


async def list_users(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return [user.to_dict() for user in result.scalars().all()]


async def list_all_applications(db: AsyncSession) -> List[Dict[str, Any]]:
    """Every application with applicant and job summaries, newest first."""
    result = await db.execute(
        select(Application)
        .options(selectinload(Application.applicant), selectinload(Application.job))
        .order_by(Application.created_at.desc(), Application.id.desc())
    )

    applications = []
    for application in result.scalars().all():
        item = application.to_dict()
        applicant, job = application.applicant, application.job
        item["applicant"] = {
            "id": applicant.id,
            "name": applicant.name,
            "email": applicant.email,
            "role": applicant.role.value,
            "phone": applicant.phone,
            "location": applicant.location,
        } if applicant else None
        item["job"] = {
            "id": job.id,
            "title": job.title,
            "company": job.company,
            "location": job.location,
            "type": job.job_type.value,
            "status": job.status.value,
        } if job else None
        applications.append(item)
    return applications


async def create_admin(
    db: AsyncSession,
    admin: Principal,
    name: str,
    email: str,
    password: str,
) -> User:
    """Create another admin account; only reachable behind require_admin."""
    user = await _create_user(db, name, email, password, UserRole.ADMIN)
    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=admin.id,
        details={"role": UserRole.ADMIN.value},
    )
    return user


async def delete_user(db: AsyncSession, admin: Principal, user_id: int) -> Dict[str, int]:
    """
    Delete a non-admin user together with the records they own.

    A jobseeker takes their applications with them; an employer takes their
    jobs and every application to those jobs. Everything goes in one commit.

    Returns:
        Counts of removed jobs, applications and notifications

    Raises:
        NotFound: If the user does not exist
        InvalidState: If the user is an admin
    """
    user = await get_user(db, user_id)
    if user.role == UserRole.ADMIN:
        raise InvalidState("Cannot delete another admin")

    removed = {"jobs": 0, "applications": 0, "notifications": 0}

    if user.role == UserRole.JOBSEEKER:
        result = await db.execute(
            delete(Application).where(Application.applicant_id == user.id)
        )
        removed["applications"] = result.rowcount or 0

    elif user.role == UserRole.EMPLOYER:
        job_ids = list(
            (await db.execute(select(Job.id).where(Job.posted_by_id == user.id))).scalars().all()
        )
        if job_ids:
            result = await db.execute(
                delete(Application).where(Application.job_id.in_(job_ids))
            )
            removed["applications"] = result.rowcount or 0
        result = await db.execute(delete(Job).where(Job.posted_by_id == user.id))
        removed["jobs"] = result.rowcount or 0

    result = await db.execute(
        delete(Notification).where(Notification.recipient_id == user.id)
    )
    removed["notifications"] = result.rowcount or 0

    await db.execute(delete(User).where(User.id == user.id))
    await commit_or_raise(db)

    log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        user_id=admin.id,
        details={"role": user.role.value, **removed},
    )
    logger.info(f"Admin {admin.id} deleted user {user_id}: {removed}")
    return removed
