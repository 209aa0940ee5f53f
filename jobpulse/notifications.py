"""
Notifications Blueprint.

Inbox for job seekers and employers: list (all or unread), mark read, open,
delete, clear and delivery preferences. Admin announcements live in the
dashboards blueprint.
"""

import logging
from typing import Any, Dict, Optional

from flask import Blueprint, flash, redirect, render_template, request

from .api_client import ApiError, data_of, get_api
from .auth import safe_next
from .route_guard import with_auth
from .session_store import get_session_store
from .verify_gate import verify_email_required

logger = logging.getLogger(__name__)

notifications_bp = Blueprint("notifications", __name__)

INBOX_ROLES = ("user", "employer")
PAGE_SIZE = 20

DEFAULT_PREFERENCES = {"email": True, "push": True}

# Where a notification without its own link leads, by type
TYPE_ROUTES = {
    "application_received": "/employer/applications",
    "application_status_changed": "/user/dashboard",
    "interview_scheduled": "/user/dashboard",
}


def notification_target(notification: Dict[str, Any]) -> str:
    """Local page a notification opens, or the inbox when it has none."""
    for key in ("link", "actionUrl"):
        link = notification.get(key) or ""
        if link.startswith("/") and not link.startswith("//"):
            return link
    if notification.get("type") == "job_alert":
        job_id = (notification.get("metadata") or {}).get("jobId")
        if job_id:
            return f"/jobs/{job_id}"
    return TYPE_ROUTES.get(notification.get("type"), inbox_path())


def inbox_path() -> str:
    if get_session_store().is_employer():
        return "/employer/notifications"
    return "/notifications"


def _load_notifications(unread_only: bool, page: int):
    api = get_api()
    params = {"page": page, "limit": PAGE_SIZE}
    if unread_only:
        params["unreadOnly"] = "true"
    try:
        data = data_of(api.get("/notifications", params=params))
        return data.get("notifications") or [], data.get("pagination") or {}, None
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Notifications endpoint failed, trying legacy inbox: {e}")

    try:
        data = data_of(api.get("/users/notifications"))
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Failed to load notifications: {e}")
        return [], {}, "Failed to load notifications"

    notifications = data.get("notifications") or []
    if unread_only:
        notifications = [n for n in notifications if not n.get("isRead")]
    return notifications, {}, None


def _load_preferences() -> Dict[str, Any]:
    try:
        preferences = data_of(get_api().get("/notifications/preferences")).get("preferences")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        return dict(DEFAULT_PREFERENCES)
    return preferences or dict(DEFAULT_PREFERENCES)


def _render_inbox():
    active_filter = "unread" if request.args.get("filter") == "unread" else "all"
    page = max(request.args.get("page", 1, type=int), 1)
    notifications, pagination, error = _load_notifications(active_filter == "unread", page)
    return render_template(
        "notifications.html",
        notifications=notifications,
        pagination=pagination,
        active_filter=active_filter,
        preferences=_load_preferences(),
        inbox=inbox_path(),
        error=error,
    )


# ------------------------------------------------------------------
# Inbox pages
# ------------------------------------------------------------------

@notifications_bp.route("/notifications")
@with_auth(required_user_type=INBOX_ROLES)
@verify_email_required
def inbox():
    return _render_inbox()


@notifications_bp.route("/employer/notifications")
@with_auth(required_user_type="employer")
@verify_email_required
def employer_inbox():
    return _render_inbox()


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------

def _act(call, success: Optional[str], failure: str) -> None:
    try:
        call()
        if success:
            flash(success, "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"{failure}: {e}")
        flash(failure, "error")


@notifications_bp.route("/notifications/<notification_id>/read", methods=["POST"])
@with_auth(required_user_type=INBOX_ROLES)
def mark_read(notification_id: str):
    _act(lambda: get_api().put(f"/notifications/{notification_id}/read"), None,
         "Failed to mark notification as read")
    return redirect(safe_next(inbox_path()))


@notifications_bp.route("/notifications/<notification_id>/open", methods=["POST"])
@with_auth(required_user_type=INBOX_ROLES)
def open_notification(notification_id: str):
    """Mark a notification read and go to the page it points at."""
    _act(lambda: get_api().put(f"/notifications/{notification_id}/read"), None,
         "Failed to mark notification as read")
    target = notification_target({
        "link": request.form.get("link"),
        "type": request.form.get("type"),
        "metadata": {"jobId": request.form.get("jobId")},
    })
    return redirect(target)


@notifications_bp.route("/notifications/<notification_id>/delete", methods=["POST"])
@with_auth(required_user_type=INBOX_ROLES)
def delete_notification(notification_id: str):
    _act(lambda: get_api().delete(f"/notifications/{notification_id}"), "Notification deleted",
         "Failed to delete notification")
    return redirect(safe_next(inbox_path()))


@notifications_bp.route("/notifications/read-all", methods=["POST"])
@with_auth(required_user_type=INBOX_ROLES)
def mark_all_read():
    _act(lambda: get_api().put("/notifications/read-all"), "All notifications marked as read",
         "Failed to mark all as read")
    return redirect(safe_next(inbox_path()))


@notifications_bp.route("/notifications/clear", methods=["POST"])
@with_auth(required_user_type=INBOX_ROLES)
def clear_all():
    _act(lambda: get_api().delete("/notifications/all"), "All notifications deleted",
         "Failed to delete notifications")
    return redirect(safe_next(inbox_path()))


@notifications_bp.route("/notifications/preferences", methods=["POST"])
@with_auth(required_user_type=INBOX_ROLES)
def update_preferences():
    preferences = {
        "email": request.form.get("email") == "on",
        "push": request.form.get("push") == "on",
    }
    _act(lambda: get_api().put("/notifications/preferences", {"preferences": preferences}),
         "Preferences saved", "Failed to save preferences")
    return redirect(safe_next(inbox_path()))
