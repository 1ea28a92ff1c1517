"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time; point everything at throwaway backends first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JSON_LOGS", "false")

from typing import Any, Optional

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import database.models  # noqa: F401
from core.middleware.authentication import Principal
from database.engine import Base
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import Job, JobType
from database.models.notifications import Notification
from database.models.users import User, UserRole


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncSession:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


class Factory:
    """Creates persisted users, jobs and applications with sensible defaults."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def user(self, role: UserRole = UserRole.JOBSEEKER, **fields: Any) -> User:
        n = self._next()
        user = User(
            name=fields.pop("name", f"{role.value.title()} {n}"),
            email=fields.pop("email", f"{role.value}{n}@example.com"),
            password_hash=fields.pop("password_hash", "not-a-real-hash"),
            role=role,
            skills=fields.pop("skills", []),
            **fields,
        )
        self.session.add(user)
        await self.session.commit()
        return user

    async def job(self, owner: User, **fields: Any) -> Job:
        n = self._next()
        job = Job(
            title=fields.pop("title", f"Engineer {n}"),
            company=fields.pop("company", "Acme"),
            description=fields.pop("description", "Build things"),
            requirements=fields.pop("requirements", "Experience building things"),
            location=fields.pop("location", "Remote"),
            job_type=fields.pop("job_type", JobType.FULL_TIME),
            skills=fields.pop("skills", []),
            benefits=fields.pop("benefits", []),
            posted_by_id=owner.id,
            **fields,
        )
        self.session.add(job)
        await self.session.commit()
        return job

    async def application(
        self,
        job: Job,
        applicant: User,
        status: ApplicationStatus = ApplicationStatus.PENDING,
        **fields: Any,
    ) -> Application:
        application = Application(
            job_id=job.id,
            applicant_id=applicant.id,
            cover_letter=fields.pop("cover_letter", "I would love to work here."),
            status=status,
            **fields,
        )
        self.session.add(application)
        await self.session.commit()
        return application


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


def principal_for(user: User) -> Principal:
    return Principal.from_user(user)


async def count_rows(session: AsyncSession, model, *criteria) -> int:
    query = select(func.count()).select_from(model)
    if criteria:
        query = query.where(*criteria)
    return (await session.execute(query)).scalar() or 0


async def notifications_for(session: AsyncSession, user_id: int) -> list[Notification]:
    result = await session.execute(
        select(Notification).where(Notification.recipient_id == user_id)
    )
    return list(result.scalars().all())


async def reload(session: AsyncSession, model, ident: int) -> Optional[Any]:
    """Read a row back from the database, bypassing the identity map."""
    result = await session.execute(
        select(model)
        .where(model.id == ident)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
