"""Job-related Pydantic schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from database.models.jobs import ExperienceLevel, JobStatus, JobType


class JobBase(BaseModel):
    """Fields shared by create and update."""

    salary_min: Optional[int] = Field(None, ge=0, description="Minimum salary")
    salary_max: Optional[int] = Field(None, ge=0, description="Maximum salary")
    experience: Optional[ExperienceLevel] = None
    skills: Optional[list[str]] = None
    benefits: Optional[list[str]] = None
    application_deadline: Optional[datetime] = None

    @field_validator("skills", "benefits", mode="before")
    @classmethod
    def split_csv(cls, v):
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


class JobCreate(JobBase):
    """Schema for posting a job."""

    title: str = Field(min_length=1, max_length=255)
    company: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    requirements: str = Field(min_length=1)
    location: str = Field(min_length=1, max_length=255)
    job_type: JobType = Field(alias="type")

    model_config = {"populate_by_name": True}


class JobUpdate(JobBase):
    """Partial update; omitted fields are left unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    company: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    requirements: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    job_type: Optional[JobType] = Field(None, alias="type")
    status: Optional[JobStatus] = None

    model_config = {"populate_by_name": True}
