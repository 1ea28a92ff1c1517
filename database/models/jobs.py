"""
Jobs Module

Job postings owned by the employer who created them.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    Integer,
    DateTime,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
)
from core.utils.datetime import now
from database.engine import Base, BigIntId
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.applications import Application
    from database.models.users import User


# ==================== Job Enums ===================== #
class JobStatus(str, PyEnum):
    """Job posting lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    FILLED = "filled"


class JobType(str, PyEnum):
    """Job employment type."""

    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    REMOTE = "remote"


class ExperienceLevel(str, PyEnum):
    """Required seniority."""

    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"
    EXECUTIVE = "executive"


# ==================== Job Model ===================== #
class Job(Base):
    """
    Job posting. `posted_by_id` is the owning employer; admins have override
    authority on every job.
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_status_created", "status", "created_at"),
        Index("ix_jobs_posted_by_status", "posted_by_id", "status"),
        Index("ix_jobs_location_type", "location", "job_type"),
    )

    id: Mapped[int] = mapped_column(
        BigIntId, primary_key=True, nullable=False, autoincrement=True
    )

    # Basic info
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)

    # Classification
    job_type: Mapped[JobType] = mapped_column(
        SQLEnum(JobType, native_enum=False, length=30), nullable=False
    )
    experience: Mapped[ExperienceLevel | None] = mapped_column(
        SQLEnum(ExperienceLevel, native_enum=False, length=30)
    )
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, native_enum=False, length=30),
        nullable=False,
        default=JobStatus.ACTIVE,
    )

    # Compensation & extras
    salary_min: Mapped[int | None] = mapped_column(Integer)
    salary_max: Mapped[int | None] = mapped_column(Integer)
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    benefits: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    application_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    # Ownership
    posted_by_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now,
        onupdate=now,
    )

    # Relationships
    posted_by: Mapped["User"] = relationship("User", back_populates="jobs")
    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "requirements": self.requirements,
            "location": self.location,
            "type": self.job_type.value,
            "experience": self.experience.value if self.experience else None,
            "status": self.status.value,
            "salary": {"min": self.salary_min, "max": self.salary_max},
            "skills": self.skills or [],
            "benefits": self.benefits or [],
            "application_deadline": (
                self.application_deadline.isoformat()
                if self.application_deadline
                else None
            ),
            "posted_by": self.posted_by_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
