"""
API Services Layer.

Business operations behind the routes. Each function takes the request's
AsyncSession and the already-authorized principal or resource explicitly.
"""

from api.services.applications import (
    submit_application,
    list_job_applications,
    list_my_applications,
    set_status,
    edit_content,
    withdraw_application,
)

from api.services.jobs import (
    create_job,
    list_jobs,
    get_job_detail,
    update_job,
    delete_job,
    list_employer_jobs,
)

from api.services.notifications import (
    emit,
    list_notifications,
    count_unread,
    mark_read,
    mark_all_read,
)

from api.services.users import (
    register_user,
    authenticate_user,
    get_user,
    update_profile,
    get_stats,
    list_users,
    list_all_applications,
    create_admin,
    delete_user,
)

__all__ = [
    # Applications
    "submit_application",
    "list_job_applications",
    "list_my_applications",
    "set_status",
    "edit_content",
    "withdraw_application",
    # Jobs
    "create_job",
    "list_jobs",
    "get_job_detail",
    "update_job",
    "delete_job",
    "list_employer_jobs",
    # Notifications
    "emit",
    "list_notifications",
    "count_unread",
    "mark_read",
    "mark_all_read",
    # Users
    "register_user",
    "authenticate_user",
    "get_user",
    "update_profile",
    "get_stats",
    "list_users",
    "list_all_applications",
    "create_admin",
    "delete_user",
]
