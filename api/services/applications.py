"""
Application service functions for API endpoints.

Holds the application state machine: submission, applicant edits while
pending, employer status review with applicant notification, and withdrawal.
Callers authorize first and hand in the authorized resource.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from api.services.notifications import emit
from core.errors import (
    Conflict,
    Forbidden,
    InvalidState,
    NotFound,
    StoreUnavailable,
    ValidationFailure,
)
from core.middleware.authentication import Principal
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import now
from database.engine import commit_or_raise
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import Job
from database.models.notifications import NotificationType

logger = logging.getLogger(__name__)

STATUS_NOTIFICATION_TITLE = "Application status updated"


def _parse_status(value: Any) -> ApplicationStatus:
    if isinstance(value, ApplicationStatus):
        return value
    try:
        return ApplicationStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise ValidationFailure(
            f"Invalid status '{value}'. Allowed: {allowed}",
            details={"field": "status", "allowed": [s.value for s in ApplicationStatus]},
        )


def status_message(job_title: str, status: ApplicationStatus) -> str:
    """Message sent to the applicant when their application changes status."""
    return f"Your application for {job_title} is now {status.value.capitalize()}."


async def submit_application(
    db: AsyncSession,
    job_id: int,
    applicant: Principal,
    cover_letter: str,
    resume: Optional[str] = None,
) -> Application:
    """
    Create a pending application for a job.

    The duplicate lookup is advisory; the unique constraint on
    (job_id, applicant_id) is what guarantees a single application per pair.

    Raises:
        ValidationFailure: If the cover letter is empty
        NotFound: If the job does not exist
        Conflict: If the applicant already applied to this job
    """
    if not cover_letter or not cover_letter.strip():
        raise ValidationFailure("Cover letter is required", details={"field": "cover_letter"})

    job = await db.get(Job, job_id)
    if not job:
        raise NotFound("Job not found")

    existing = await db.execute(
        select(Application.id).where(
            Application.job_id == job_id,
            Application.applicant_id == applicant.id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict("You have already applied for this job")

    application = Application(
        job_id=job_id,
        applicant_id=applicant.id,
        cover_letter=cover_letter,
        resume=resume,
        status=ApplicationStatus.PENDING,
    )
    db.add(application)

    try:
        await db.flush()
        await commit_or_raise(db)
    except IntegrityError:
        await db.rollback()
        raise Conflict("You have already applied for this job")

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=applicant.id,
        details={"job_id": job_id},
    )
    logger.info(f"User {applicant.id} applied to job {job_id} (application {application.id})")
    return application


async def list_job_applications(db: AsyncSession, job: Job) -> List[Dict[str, Any]]:
    """
    Applications for a job with applicant contact details, newest first.

    The caller has already authorized the job with the job_owner strategy.
    """
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
            "profile": {
                "bio": applicant.bio,
                "location": applicant.location,
                "skills": applicant.skills or [],
            },
        } if applicant else None
        applications.append(item)
    return applications


async def list_my_applications(db: AsyncSession, applicant: Principal) -> List[Dict[str, Any]]:
    """The applicant's own applications with a job summary, newest first."""
    result = await db.execute(
        select(Application)
        .options(selectinload(Application.job))
        .where(Application.applicant_id == applicant.id)
        .order_by(Application.applied_at.desc(), Application.id.desc())
    )

    applications = []
    for application in result.scalars().all():
        item = application.to_dict()
        job = application.job
        item["job"] = {
            "id": job.id,
            "title": job.title,
            "company": job.company,
            "location": job.location,
            "type": job.job_type.value,
        } if job else None
        applications.append(item)
    return applications


async def set_status(
    db: AsyncSession,
    application: Application,
    new_status: Any,
    reviewer: Principal,
    notes: Optional[str] = None,
    interview_date: Optional[datetime] = None,
    interview_notes: Optional[str] = None,
) -> Application:
    """
    Move an application to a new review status.

    Every call stamps the reviewer and review time, even when the status is
    unchanged. A change of status notifies the applicant in the same commit,
    so either both persist or neither does.

    Args:
        db: Database session
        application: Application authorized with application_job_owner,
            its job loaded
        new_status: One of the ApplicationStatus values
        reviewer: Principal performing the review
        notes: Reviewer notes, written only when non-empty
        interview_date: Interview time, written only when provided
        interview_notes: Interview notes, written only when non-empty

    Returns:
        The updated application

    Raises:
        ValidationFailure: If new_status is not a known status
        StoreUnavailable: If writing the notification or the commit fails;
            nothing is persisted
    """
    status = _parse_status(new_status)
    previous = application.status

    application.status = status
    application.reviewed_by_id = reviewer.id
    application.reviewed_at = now()

    if notes:
        application.notes = notes
    if interview_date:
        application.interview_date = interview_date
    if interview_notes:
        application.interview_notes = interview_notes

    try:
        if status != previous:
            await emit(
                db,
                recipient_id=application.applicant_id,
                notification_type=NotificationType.APPLICATION_STATUS.value,
                title=STATUS_NOTIFICATION_TITLE,
                message=status_message(application.job.title, status),
                metadata={
                    "job_id": application.job_id,
                    "application_id": application.id,
                    "status": status.value,
                },
            )
        await commit_or_raise(db)
    except IntegrityError:
        await db.rollback()
        raise
    except DBAPIError as exc:
        # the status change must not persist without its notification
        await db.rollback()
        logger.error(f"Store failure during status change: {type(exc).__name__}", exc_info=True)
        raise StoreUnavailable() from exc
    except Exception:
        await db.rollback()
        raise

    log_audit_event(
        action=AuditAction.STATUS_CHANGE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=reviewer.id,
        details={"from": previous.value, "to": status.value},
    )
    return application


async def edit_content(
    db: AsyncSession,
    application: Application,
    principal: Principal,
    cover_letter: Optional[str] = None,
    resume: Optional[str] = None,
) -> Application:
    """
    Let the applicant revise a pending application.

    Raises:
        Forbidden: If the principal is not the applicant
        InvalidState: If the application has left the pending state
    """
    if application.applicant_id != principal.id:
        raise Forbidden("Only the applicant can edit this application")

    if application.status != ApplicationStatus.PENDING:
        raise InvalidState("Cannot edit application after it has been reviewed")

    if cover_letter is not None:
        if not cover_letter.strip():
            raise ValidationFailure("Cover letter cannot be empty", details={"field": "cover_letter"})
        application.cover_letter = cover_letter
    if resume is not None:
        application.resume = resume

    await commit_or_raise(db)

    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=principal.id,
        details={"cover_letter": cover_letter, "resume": resume},
        contains_pii=True,
    )
    return application


async def withdraw_application(
    db: AsyncSession,
    application: Application,
    principal: Optional[Principal] = None,
) -> None:
    """
    Delete an application; it leaves its job's application list with it.

    The caller has already authorized the application with the
    application_applicant strategy. No notification is sent.
    """
    application_id = application.id
    job_id = application.job_id

    await db.execute(delete(Application).where(Application.id == application_id))
    await commit_or_raise(db)

    log_audit_event(
        action=AuditAction.WITHDRAW,
        resource_type=ResourceType.APPLICATION,
        resource_id=application_id,
        user_id=principal.id if principal else None,
        details={"job_id": job_id},
    )
    logger.info(f"Application {application_id} withdrawn from job {job_id}")
