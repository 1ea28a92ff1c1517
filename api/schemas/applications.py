"""Application-related Pydantic schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ApplicationCreate(BaseModel):
    cover_letter: str = Field(min_length=1, description="Cover letter text")
    resume: Optional[str] = Field(None, max_length=1000, description="Resume reference")


class ApplicationEdit(BaseModel):
    """Applicant edits while the application is pending."""

    cover_letter: Optional[str] = Field(None, min_length=1)
    resume: Optional[str] = Field(None, max_length=1000)


class StatusUpdate(BaseModel):
    """
    Employer review of an application.

    status is left as a plain string so an unknown value reaches the state
    machine and fails there with a validation error naming the allowed values.
    """

    status: str = Field(description="pending, reviewed, shortlisted, rejected or accepted")
    notes: Optional[str] = None
    interview_date: Optional[datetime] = None
    interview_notes: Optional[str] = None
