"""Job service functions."""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from api.schemas.common import PaginationParams
from core.errors import ValidationFailure
from core.middleware.authentication import Principal
from core.security import AuditAction, ResourceType, log_audit_event
from database.engine import commit_or_raise
from database.models.applications import Application
from database.models.jobs import ExperienceLevel, Job, JobStatus, JobType
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)

# Columns an employer may set on create or update
EDITABLE_FIELDS = (
    "title",
    "company",
    "description",
    "requirements",
    "location",
    "job_type",
    "experience",
    "status",
    "salary_min",
    "salary_max",
    "skills",
    "benefits",
    "application_deadline",
)


ENUM_FIELDS = {
    "job_type": JobType,
    "experience": ExperienceLevel,
    "status": JobStatus,
}


def _apply_fields(job: Job, data: Dict[str, Any]) -> None:
    """Validate then copy the provided (non-None) fields onto the job."""
    changes = {
        field: data[field]
        for field in EDITABLE_FIELDS
        if field in data and data[field] is not None
    }

    for field, enum_cls in ENUM_FIELDS.items():
        if field in changes:
            try:
                changes[field] = enum_cls(changes[field])
            except ValueError:
                raise ValidationFailure(
                    f"Invalid {field} '{changes[field]}'",
                    details={"field": field, "allowed": [e.value for e in enum_cls]},
                )

    salary_min = changes.get("salary_min", job.salary_min)
    salary_max = changes.get("salary_max", job.salary_max)
    if salary_min is not None and salary_max is not None and salary_min > salary_max:
        raise ValidationFailure(
            "Minimum salary cannot exceed maximum salary",
            details={"field": "salary_min"},
        )

    for field, value in changes.items():
        setattr(job, field, value)


async def create_job(db: AsyncSession, employer: Principal, data: Dict[str, Any]) -> Job:
    """Create an active job owned by the employer."""
    job = Job(posted_by_id=employer.id, status=JobStatus.ACTIVE, skills=[], benefits=[])
    _apply_fields(job, data)
    db.add(job)
    await commit_or_raise(db)

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=employer.id,
        details={"title": job.title},
    )
    return job


async def list_jobs(
    db: AsyncSession,
    search: Optional[str] = None,
    location: Optional[str] = None,
    job_type: Optional[JobType] = None,
    experience: Optional[ExperienceLevel] = None,
    skills: Optional[List[str]] = None,
    pagination: Optional[PaginationParams] = None,
) -> Dict[str, Any]:
    """
    Active jobs matching the filters, newest first.

    search matches title, description or company case-insensitively;
    skills matches jobs listing any of the given skills.
    """
    pagination = pagination or PaginationParams()
    query = select(Job).where(Job.status == JobStatus.ACTIVE)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Job.title.ilike(pattern),
                Job.description.ilike(pattern),
                Job.company.ilike(pattern),
            )
        )
    if location:
        query = query.where(Job.location.ilike(f"%{location}%"))
    if job_type:
        query = query.where(Job.job_type == job_type)
    if experience:
        query = query.where(Job.experience == experience)
    if skills:
        # skills is a JSON array; match the quoted element in its text form
        skills_text = cast(Job.skills, String)
        query = query.where(
            or_(*(skills_text.like(f'%"{skill.strip()}"%') for skill in skills if skill.strip()))
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        query.options(selectinload(Job.posted_by))
        .order_by(Job.created_at.desc(), Job.id.desc())
        .limit(pagination.page_size)
        .offset(pagination.offset)
    )
    result = await db.execute(query)

    jobs = []
    for job in result.scalars().all():
        item = job.to_dict()
        employer = job.posted_by
        item["employer"] = {
            "id": employer.id,
            "company_name": employer.company_name,
            "company_location": employer.company_location,
        } if employer else None
        jobs.append(item)

    return {
        "jobs": jobs,
        "total": total,
        "page": pagination.page,
        "page_size": pagination.page_size,
        "total_pages": (total + pagination.page_size - 1) // pagination.page_size,
    }


async def get_job_detail(
    db: AsyncSession,
    job: Job,
    principal: Optional[Principal] = None,
) -> Dict[str, Any]:
    """
    Job details shaped by who is asking.

    The owning employer sees every application with applicant contact
    details; a jobseeker learns only whether they applied; anyone else sees
    the posting alone.
    """
    employer = await db.get(User, job.posted_by_id)
    detail = job.to_dict()
    detail["employer"] = {
        "id": employer.id,
        "name": employer.name,
        "email": employer.email,
        "company_name": employer.company_name,
        "company_website": employer.company_website,
    } if employer else None

    if principal is None:
        return detail

    if principal.role == UserRole.EMPLOYER and principal.id == job.posted_by_id:
        result = await db.execute(
            select(Application)
            .options(selectinload(Application.applicant))
            .where(Application.job_id == job.id)
            .order_by(Application.applied_at.desc(), Application.id.desc())
        )
        applications = []
        for application in result.scalars().all():
            item = application.to_dict()
            applicant = application.applicant
            item["applicant"] = {
                "id": applicant.id,
                "name": applicant.name,
                "email": applicant.email,
                "phone": applicant.phone,
            } if applicant else None
            applications.append(item)
        detail["application_ids"] = [a["id"] for a in applications]
        detail["applications"] = applications

    elif principal.role == UserRole.JOBSEEKER:
        result = await db.execute(
            select(Application.id).where(
                Application.job_id == job.id,
                Application.applicant_id == principal.id,
            )
        )
        detail["has_applied"] = result.scalar_one_or_none() is not None

    return detail


async def update_job(
    db: AsyncSession,
    job: Job,
    data: Dict[str, Any],
    principal: Optional[Principal] = None,
) -> Job:
    """Apply a partial update to a job already authorized with job_owner."""
    _apply_fields(job, data)
    await commit_or_raise(db)

    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=principal.id if principal else None,
        details={"fields": sorted(k for k, v in data.items() if v is not None)},
    )
    return job


async def delete_job(
    db: AsyncSession,
    job: Job,
    principal: Optional[Principal] = None,
) -> int:
    """
    Delete a job and every application to it in one commit.

    Returns:
        Number of applications removed with the job
    """
    job_id = job.id
    removed = await db.execute(delete(Application).where(Application.job_id == job_id))
    await db.execute(delete(Job).where(Job.id == job_id))
    await commit_or_raise(db)

    log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.JOB,
        resource_id=job_id,
        user_id=principal.id if principal else None,
        details={"applications_removed": removed.rowcount},
    )
    logger.info(f"Job {job_id} deleted with {removed.rowcount} applications")
    return removed.rowcount or 0


async def list_employer_jobs(db: AsyncSession, employer: Principal) -> List[Dict[str, Any]]:
    """Employer's own jobs, newest first, with application counts by status."""
    result = await db.execute(
        select(Job)
        .where(Job.posted_by_id == employer.id)
        .order_by(Job.created_at.desc(), Job.id.desc())
    )
    jobs = list(result.scalars().all())

    counts: Dict[int, Dict[str, int]] = {job.id: {} for job in jobs}
    if jobs:
        rows = await db.execute(
            select(Application.job_id, Application.status, func.count())
            .where(Application.job_id.in_(list(counts)))
            .group_by(Application.job_id, Application.status)
        )
        for job_id, status, count in rows.all():
            counts[job_id][status.value] = count

    items = []
    for job in jobs:
        item = job.to_dict()
        item["application_counts"] = counts[job.id]
        item["application_count"] = sum(counts[job.id].values())
        items.append(item)
    return items
