"""
Tests for the application state machine.

Tests:
- Submission and the one-application-per-job rule
- Employer status review with applicant notification
- Applicant edits while pending
- Withdrawal
- Atomicity of a transition and its notification
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from api.services.applications import (
    edit_content,
    list_job_applications,
    list_my_applications,
    set_status,
    status_message,
    submit_application,
    withdraw_application,
)
from core.errors import (
    Conflict,
    Forbidden,
    InvalidState,
    NotFound,
    StoreUnavailable,
    ValidationFailure,
)
from core.middleware.authorization import (
    application_job_owner,
    authorize_ownership,
    fetch_application,
)
from database.models.applications import Application, ApplicationStatus
from database.models.notifications import Notification
from database.models.users import UserRole
from tests.conftest import count_rows, notifications_for, principal_for, reload

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)


@pytest.fixture
async def setup(db, factory):
    """An employer's job with one pending application from a jobseeker."""
    employer = await factory.user(UserRole.EMPLOYER, name="Erin")
    seeker = await factory.user(UserRole.JOBSEEKER, name="Sam")
    job = await factory.job(employer, title="Backend Dev")
    application = await factory.application(job, seeker)
    loaded = await fetch_application(db)(application.id)
    return employer, seeker, job, loaded


class TestSubmitApplication:
    """Submission."""

    @pytest.mark.asyncio
    async def test_creates_pending_application(self, db, factory):
        employer = await factory.user(UserRole.EMPLOYER)
        seeker = await factory.user(UserRole.JOBSEEKER)
        job = await factory.job(employer)

        application = await submit_application(
            db, job.id, principal_for(seeker), "Hire me", resume="resumes/sam.pdf"
        )

        assert application.status == ApplicationStatus.PENDING
        assert application.reviewed_at is None
        assert application.resume == "resumes/sam.pdf"
        assert await count_rows(db, Application, Application.job_id == job.id) == 1

    @pytest.mark.asyncio
    async def test_missing_job(self, db, factory):
        seeker = await factory.user(UserRole.JOBSEEKER)
        with pytest.raises(NotFound):
            await submit_application(db, 999, principal_for(seeker), "Hire me")

    @pytest.mark.asyncio
    async def test_cover_letter_required(self, db, factory):
        employer = await factory.user(UserRole.EMPLOYER)
        seeker = await factory.user(UserRole.JOBSEEKER)
        job = await factory.job(employer)

        with pytest.raises(ValidationFailure):
            await submit_application(db, job.id, principal_for(seeker), "   ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("existing_status", list(ApplicationStatus))
    async def test_second_application_conflicts_regardless_of_status(
        self, db, factory, existing_status
    ):
        employer = await factory.user(UserRole.EMPLOYER)
        seeker = await factory.user(UserRole.JOBSEEKER)
        job = await factory.job(employer)
        await factory.application(job, seeker, status=existing_status)

        with pytest.raises(Conflict):
            await submit_application(db, job.id, principal_for(seeker), "Again")

        assert await count_rows(db, Application, Application.job_id == job.id) == 1

    @pytest.mark.asyncio
    async def test_store_constraint_backs_up_precheck(self, db, factory):
        """A racing insert that slips past the lookup still fails with Conflict."""
        employer = await factory.user(UserRole.EMPLOYER)
        seeker = await factory.user(UserRole.JOBSEEKER)
        job = await factory.job(employer)
        await factory.application(job, seeker)
        job_id = job.id

        class NoRows:
            def scalar_one_or_none(self):
                return None

        real_execute = db.execute
        calls = {"n": 0}

        async def execute(statement, *args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                return NoRows()
            return await real_execute(statement, *args, **kwargs)

        with patch.object(db, "execute", side_effect=execute):
            with pytest.raises(Conflict):
                await submit_application(db, job_id, principal_for(seeker), "Race")

        # the rollback expired the loaded rows; only saved ids are safe to use
        assert await count_rows(db, Application, Application.job_id == job_id) == 1

    @pytest.mark.asyncio
    async def test_other_applicants_unaffected(self, db, factory):
        employer = await factory.user(UserRole.EMPLOYER)
        first = await factory.user(UserRole.JOBSEEKER)
        second = await factory.user(UserRole.JOBSEEKER)
        job = await factory.job(employer)

        await submit_application(db, job.id, principal_for(first), "One")
        await submit_application(db, job.id, principal_for(second), "Two")

        assert await count_rows(db, Application, Application.job_id == job.id) == 2


class TestSetStatus:
    """Employer review."""

    @pytest.mark.asyncio
    async def test_shortlist_by_owner(self, db, setup):
        employer, seeker, job, application = setup

        with patch("api.services.applications.now", return_value=T1):
            updated = await set_status(
                db, application, "shortlisted", principal_for(employer), notes="strong candidate"
            )

        assert updated.status == ApplicationStatus.SHORTLISTED
        assert updated.notes == "strong candidate"
        assert updated.reviewed_by_id == employer.id
        assert updated.reviewed_at == T1

        notifications = await notifications_for(db, seeker.id)
        assert len(notifications) == 1
        notification = notifications[0]
        assert notification.notification_type == "application_status"
        assert "Backend Dev" in notification.message
        assert "Shortlisted" in notification.message
        assert notification.extra == {
            "job_id": job.id,
            "application_id": application.id,
            "status": "shortlisted",
        }
        assert notification.is_read is False

    def test_message_format(self):
        assert (
            status_message("Backend Dev", ApplicationStatus.ACCEPTED)
            == "Your application for Backend Dev is now Accepted."
        )

    @pytest.mark.asyncio
    async def test_same_status_stamps_review_without_notifying(self, db, setup):
        employer, seeker, _, application = setup
        reviewer = principal_for(employer)

        with patch("api.services.applications.now", return_value=T0):
            await set_status(db, application, ApplicationStatus.REVIEWED, reviewer)
        with patch("api.services.applications.now", return_value=T1):
            await set_status(db, application, ApplicationStatus.REVIEWED, reviewer)

        assert application.reviewed_at == T1
        assert len(await notifications_for(db, seeker.id)) == 1

    @pytest.mark.asyncio
    async def test_every_change_notifies_once(self, db, setup):
        employer, seeker, _, application = setup
        reviewer = principal_for(employer)

        for status in ("reviewed", "rejected", "accepted", "pending"):
            await set_status(db, application, status, reviewer)

        # no terminal state: accepted can move back to pending
        assert application.status == ApplicationStatus.PENDING
        assert len(await notifications_for(db, seeker.id)) == 4

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, db, setup):
        employer, seeker, _, application = setup

        with pytest.raises(ValidationFailure) as exc_info:
            await set_status(db, application, "hired", principal_for(employer))

        assert "pending" in exc_info.value.details["allowed"]
        assert application.status == ApplicationStatus.PENDING
        assert application.reviewed_at is None
        assert await notifications_for(db, seeker.id) == []

    @pytest.mark.asyncio
    async def test_empty_review_fields_never_clear(self, db, setup):
        employer, _, _, application = setup
        reviewer = principal_for(employer)
        interview = datetime(2024, 4, 2, 15, 0, tzinfo=timezone.utc)

        await set_status(
            db, application, "shortlisted", reviewer,
            notes="strong candidate", interview_date=interview, interview_notes="panel",
        )
        await set_status(db, application, "reviewed", reviewer, notes="", interview_notes=None)

        assert application.notes == "strong candidate"
        assert application.interview_date == interview
        assert application.interview_notes == "panel"

    @pytest.mark.asyncio
    async def test_admin_may_review(self, db, factory, setup):
        _, seeker, _, application = setup
        admin = await factory.user(UserRole.ADMIN)

        authorized = await authorize_ownership(
            principal_for(admin), application.id, fetch_application(db), application_job_owner
        )
        await set_status(db, authorized, "accepted", principal_for(admin))

        assert authorized.reviewed_by_id == admin.id
        assert len(await notifications_for(db, seeker.id)) == 1

    @pytest.mark.asyncio
    async def test_foreign_employer_cannot_review(self, db, factory, setup):
        _, seeker, _, application = setup
        stranger = await factory.user(UserRole.EMPLOYER)

        with pytest.raises(Forbidden):
            await authorize_ownership(
                principal_for(stranger), application.id, fetch_application(db), application_job_owner
            )

        stored = await reload(db, Application, application.id)
        assert stored.status == ApplicationStatus.PENDING
        assert stored.reviewed_at is None
        assert await count_rows(db, Notification) == 0

    @pytest.mark.asyncio
    async def test_notification_failure_aborts_transition(self, db, setup):
        employer, seeker, _, application = setup
        application_id = application.id

        with patch(
            "api.services.applications.emit",
            AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full"))),
        ):
            with pytest.raises(StoreUnavailable):
                await set_status(db, application, "rejected", principal_for(employer))

        stored = await reload(db, Application, application_id)
        assert stored.status == ApplicationStatus.PENDING
        assert stored.reviewed_by_id is None
        assert stored.reviewed_at is None
        assert await count_rows(db, Notification) == 0

    @pytest.mark.asyncio
    async def test_notification_write_failure_is_store_unavailable(self, db, setup):
        employer, seeker, _, application = setup
        application_id = application.id
        seeker_id = seeker.id

        with patch.object(
            db, "flush", AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("locked")))
        ):
            with pytest.raises(StoreUnavailable):
                await set_status(db, application, "shortlisted", principal_for(employer))

        stored = await reload(db, Application, application_id)
        assert stored.status == ApplicationStatus.PENDING
        assert await notifications_for(db, seeker_id) == []

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back_both(self, db, setup):
        employer, seeker, _, application = setup
        application_id = application.id

        with patch.object(
            db, "commit", AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("gone")))
        ):
            with pytest.raises(StoreUnavailable):
                await set_status(db, application, "rejected", principal_for(employer))

        stored = await reload(db, Application, application_id)
        assert stored.status == ApplicationStatus.PENDING
        assert stored.reviewed_by_id is None
        assert await count_rows(db, Notification) == 0


class TestEditContent:
    """Applicant edits."""

    @pytest.mark.asyncio
    async def test_applicant_edits_pending(self, db, setup):
        _, seeker, _, application = setup

        updated = await edit_content(
            db, application, principal_for(seeker), cover_letter="Updated letter"
        )

        assert updated.cover_letter == "Updated letter"
        assert updated.status == ApplicationStatus.PENDING

    @pytest.mark.asyncio
    async def test_edit_does_not_notify(self, db, setup):
        _, seeker, _, application = setup
        await edit_content(db, application, principal_for(seeker), resume="resumes/v2.pdf")
        assert await count_rows(db, Notification) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [
        ApplicationStatus.REVIEWED,
        ApplicationStatus.SHORTLISTED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.ACCEPTED,
    ])
    async def test_non_pending_is_invalid_state(self, db, setup, status):
        employer, seeker, _, application = setup
        await set_status(db, application, status, principal_for(employer))

        with pytest.raises(InvalidState):
            await edit_content(db, application, principal_for(seeker), cover_letter="Too late")

    @pytest.mark.asyncio
    async def test_non_applicant_forbidden(self, db, factory, setup):
        employer, _, _, application = setup
        other = await factory.user(UserRole.JOBSEEKER)

        for principal in (principal_for(employer), principal_for(other)):
            with pytest.raises(Forbidden):
                await edit_content(db, application, principal, cover_letter="Hijack")

        assert application.cover_letter == "I would love to work here."


class TestWithdraw:
    """Withdrawal."""

    @pytest.mark.asyncio
    async def test_removes_from_store_and_job_list(self, db, setup):
        employer, seeker, job, application = setup

        await withdraw_application(db, application, principal_for(seeker))

        assert await reload(db, Application, application.id) is None
        assert await list_job_applications(db, job) == []
        assert await count_rows(db, Notification) == 0

    @pytest.mark.asyncio
    async def test_allowed_at_any_status(self, db, setup):
        employer, seeker, _, application = setup
        await set_status(db, application, "accepted", principal_for(employer))

        await withdraw_application(db, application, principal_for(seeker))

        assert await reload(db, Application, application.id) is None

    @pytest.mark.asyncio
    async def test_can_reapply_after_withdrawal(self, db, setup):
        _, seeker, job, application = setup
        await withdraw_application(db, application, principal_for(seeker))

        again = await submit_application(db, job.id, principal_for(seeker), "Second try")
        assert again.status == ApplicationStatus.PENDING


class TestListings:
    @pytest.mark.asyncio
    async def test_job_applications_include_applicant(self, db, setup):
        _, seeker, job, application = setup

        items = await list_job_applications(db, job)

        assert [i["id"] for i in items] == [application.id]
        assert items[0]["applicant"]["name"] == "Sam"

    @pytest.mark.asyncio
    async def test_my_applications_include_job(self, db, factory, setup):
        employer, seeker, job, _ = setup
        other_job = await factory.job(employer, title="Frontend Dev")
        await factory.application(other_job, seeker)

        items = await list_my_applications(db, principal_for(seeker))

        assert {i["job"]["title"] for i in items} == {"Backend Dev", "Frontend Dev"}
