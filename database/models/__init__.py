"""Model registry; importing this package registers every table on Base.metadata."""

from database.models.users import User, UserRole
from database.models.jobs import Job, JobStatus, JobType, ExperienceLevel
from database.models.applications import Application, ApplicationStatus
from database.models.notifications import Notification, NotificationType

__all__ = [
    "User",
    "UserRole",
    "Job",
    "JobStatus",
    "JobType",
    "ExperienceLevel",
    "Application",
    "ApplicationStatus",
    "Notification",
    "NotificationType",
]
