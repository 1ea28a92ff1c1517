from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    DateTime,
    Text,
    JSON,
    Enum as SQLEnum,
)
from core.utils.datetime import now
from database.engine import Base, BigIntId
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.jobs import Job
    from database.models.applications import Application


# ==================== User Role ===================== #
class UserRole(str, PyEnum):
    JOBSEEKER = "jobseeker"  # applies to jobs
    EMPLOYER = "employer"  # posts jobs and reviews applications
    ADMIN = "admin"  # platform admin with override authority


# roles that can be chosen at self-registration
SELF_REGISTER_ROLES = frozenset({UserRole.JOBSEEKER, UserRole.EMPLOYER})


class User(Base):
    """
    Platform account. The role is fixed at creation; admins are only created
    by other admins.
    """

    __tablename__: str = "users"

    id: Mapped[int] = mapped_column(
        BigIntId, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False, length=20),
        nullable=False,
        index=True,
    )
    phone: Mapped[str | None] = mapped_column(String(50))

    # Job seeker profile
    bio: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(255))
    skills: Mapped[list[str] | None] = mapped_column(JSON)

    # Employer company details
    company_name: Mapped[str | None] = mapped_column(String(255))
    company_website: Mapped[str | None] = mapped_column(String(500))
    company_description: Mapped[str | None] = mapped_column(Text)
    company_location: Mapped[str | None] = mapped_column(String(255))

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
    jobs: Mapped[list["Job"]] = relationship("Job", back_populates="posted_by")
    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="applicant",
        foreign_keys="Application.applicant_id",
    )

    def to_dict(self) -> dict[str, Any]:
        """Public representation; never includes the password hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "phone": self.phone,
            "profile": {
                "bio": self.bio,
                "location": self.location,
                "skills": self.skills or [],
            },
            "company": {
                "name": self.company_name,
                "website": self.company_website,
                "description": self.company_description,
                "location": self.company_location,
            },
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
