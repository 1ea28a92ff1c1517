"""FastAPI dependencies for dependency injection."""

from typing import Optional

from fastapi import Query

from api.schemas.common import PaginationParams
from core.middleware.authentication import (
    Principal,
    get_current_principal,
    get_optional_principal,
)
from core.middleware.authorization import (
    require_admin,
    require_employer,
    require_jobseeker,
)
from database.engine import get_db


def get_pagination(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, alias="limit", description="Items per page"),
) -> PaginationParams:
    """Pagination from ?page=&limit= query parameters."""
    return PaginationParams(page=page, page_size=page_size)


def get_skills_filter(
    skills: Optional[str] = Query(None, description="Comma-separated skills"),
) -> Optional[list[str]]:
    if not skills:
        return None
    return [s.strip() for s in skills.split(",") if s.strip()]


__all__ = [
    "Principal",
    "get_db",
    "get_current_principal",
    "get_optional_principal",
    "get_pagination",
    "get_skills_filter",
    "require_admin",
    "require_employer",
    "require_jobseeker",
]
