"""
Job posting endpoints.

Browsing is public; posting needs the employer role; editing and deleting
need ownership of the job (admins override).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    Principal,
    get_current_principal,
    get_db,
    get_optional_principal,
    get_pagination,
    get_skills_filter,
    require_employer,
)
from api.schemas.common import ERROR_RESPONSES, PaginationParams
from api.schemas.jobs import JobCreate, JobUpdate
from api.services import jobs as job_service
from core.errors import NotFound
from core.middleware.authorization import authorize_ownership, fetch_job, job_owner
from database.models.jobs import ExperienceLevel, Job, JobType

router = APIRouter(prefix="/jobs", tags=["jobs"], responses=ERROR_RESPONSES)


@router.get("", summary="List Jobs")
async def list_jobs(
    search: Optional[str] = Query(None, description="Matches title, description or company"),
    location: Optional[str] = Query(None, description="Partial location match"),
    job_type: Optional[JobType] = Query(None, alias="type"),
    experience: Optional[ExperienceLevel] = Query(None),
    skills: Optional[list[str]] = Depends(get_skills_filter),
    pagination: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
):
    """Active jobs only, newest first."""
    return await job_service.list_jobs(
        db,
        search=search,
        location=location,
        job_type=job_type,
        experience=experience,
        skills=skills,
        pagination=pagination,
    )


@router.get("/mine", summary="List My Jobs")
async def list_my_jobs(
    principal: Principal = Depends(require_employer),
    db: AsyncSession = Depends(get_db),
):
    jobs = await job_service.list_employer_jobs(db, principal)
    return {"jobs": jobs}


@router.get("/{job_id}", summary="Get Job Details")
async def get_job(
    job_id: int = Path(..., description="Job ID"),
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    """Works anonymously; a valid token adds role-specific application info."""
    job = await db.get(Job, job_id)
    if not job:
        raise NotFound("Job not found")
    return {"job": await job_service.get_job_detail(db, job, principal)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Post Job")
async def create_job(
    body: JobCreate,
    principal: Principal = Depends(require_employer),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.create_job(db, principal, body.model_dump(exclude_unset=True))
    return {"message": "Job posted successfully", "job": job.to_dict()}


@router.put("/{job_id}", summary="Update Job")
async def update_job(
    body: JobUpdate,
    job_id: int = Path(..., description="Job ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    job = await authorize_ownership(principal, job_id, fetch_job(db), job_owner)
    job = await job_service.update_job(
        db, job, body.model_dump(exclude_unset=True), principal
    )
    return {"message": "Job updated successfully", "job": job.to_dict()}


@router.delete("/{job_id}", summary="Delete Job")
async def delete_job(
    job_id: int = Path(..., description="Job ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Deletes the job together with every application to it."""
    job = await authorize_ownership(principal, job_id, fetch_job(db), job_owner)
    await job_service.delete_job(db, job, principal)
    return {"message": "Job deleted successfully"}
