"""
Application workflow endpoints.

Jobseekers apply, edit while pending and withdraw; the owning employer (or an
admin) reviews status. Authorization happens here, before any service call.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    Principal,
    get_current_principal,
    get_db,
    require_jobseeker,
)
from api.schemas.applications import ApplicationCreate, ApplicationEdit, StatusUpdate
from api.schemas.common import ERROR_RESPONSES
from api.services import applications as application_service
from core.middleware.authorization import (
    application_applicant,
    application_job_owner,
    authorize_ownership,
    fetch_application,
    fetch_job,
    job_owner,
)

router = APIRouter(prefix="/applications", tags=["applications"], responses=ERROR_RESPONSES)


@router.post(
    "/jobs/{job_id}",
    status_code=status.HTTP_201_CREATED,
    summary="Apply to Job",
)
async def apply_to_job(
    body: ApplicationCreate,
    job_id: int = Path(..., description="Job ID"),
    principal: Principal = Depends(require_jobseeker),
    db: AsyncSession = Depends(get_db),
):
    """Submit an application. A second application to the same job returns 409."""
    application = await application_service.submit_application(
        db,
        job_id=job_id,
        applicant=principal,
        cover_letter=body.cover_letter,
        resume=body.resume,
    )
    return {
        "message": "Application submitted successfully",
        "application": application.to_dict(),
    }


@router.get("/jobs/{job_id}", summary="List Applications for Job")
async def list_job_applications(
    job_id: int = Path(..., description="Job ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Applications to a job, visible to the job's employer and admins."""
    job = await authorize_ownership(principal, job_id, fetch_job(db), job_owner)
    applications = await application_service.list_job_applications(db, job)
    return {"applications": applications}


@router.get("/mine", summary="List My Applications")
async def list_my_applications(
    principal: Principal = Depends(require_jobseeker),
    db: AsyncSession = Depends(get_db),
):
    applications = await application_service.list_my_applications(db, principal)
    return {"applications": applications}


@router.put("/{application_id}/status", summary="Update Application Status")
async def update_status(
    body: StatusUpdate,
    application_id: int = Path(..., description="Application ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Review an application; the applicant is notified when the status changes."""
    application = await authorize_ownership(
        principal, application_id, fetch_application(db), application_job_owner
    )
    application = await application_service.set_status(
        db,
        application,
        body.status,
        reviewer=principal,
        notes=body.notes,
        interview_date=body.interview_date,
        interview_notes=body.interview_notes,
    )
    return {
        "message": "Application updated successfully",
        "application": application.to_dict(),
    }


@router.put("/{application_id}", summary="Edit Pending Application")
async def edit_application(
    body: ApplicationEdit,
    application_id: int = Path(..., description="Application ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await authorize_ownership(
        principal, application_id, fetch_application(db), application_applicant
    )
    application = await application_service.edit_content(
        db,
        application,
        principal,
        cover_letter=body.cover_letter,
        resume=body.resume,
    )
    return {
        "message": "Application updated successfully",
        "application": application.to_dict(),
    }


@router.delete("/{application_id}", summary="Withdraw Application")
async def withdraw_application(
    application_id: int = Path(..., description="Application ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await authorize_ownership(
        principal, application_id, fetch_application(db), application_applicant
    )
    await application_service.withdraw_application(db, application, principal)
    return {"message": "Application withdrawn successfully"}
