"""
Account Settings Blueprint.

Profile and password settings shared by all roles. Profile edits are merged
into the session user with ``SessionStore.update_user`` so the navbar and
dashboards pick them up without a fresh ``/auth/me`` round trip.
"""

import logging

from flask import Blueprint, flash, redirect, render_template, request

from .api_client import ApiError, data_of, get_api
from .route_guard import with_auth
from .session_store import get_session_store

logger = logging.getLogger(__name__)

account_bp = Blueprint("account", __name__, url_prefix="/settings")

MIN_NEW_PASSWORD_LENGTH = 8

PROFILE_FIELDS = {
    "user": ("name", "phone", "location", "headline", "bio"),
    "employer": ("name", "company", "phone", "website", "location", "description"),
    "admin": ("name", "phone"),
}

PROFILE_ENDPOINTS = {
    "employer": "/employers/me",
}


@account_bp.route("", methods=["GET"])
@with_auth
def settings():
    store = get_session_store()
    return render_template(
        "settings.html",
        user=store.user,
        fields=PROFILE_FIELDS.get(store.user_type, PROFILE_FIELDS["user"]),
    )


@account_bp.route("/profile", methods=["POST"])
@with_auth
def update_profile():
    """Save profile fields for the session user's role."""
    store = get_session_store()
    fields = PROFILE_FIELDS.get(store.user_type, PROFILE_FIELDS["user"])
    profile = {field: request.form.get(field, "").strip() for field in fields if field in request.form}
    endpoint = PROFILE_ENDPOINTS.get(store.user_type, "/users/profile")

    try:
        data = data_of(get_api().put(endpoint, profile))
        store.update_user(data.get("user") or data.get("employer") or profile)
        flash("Profile updated successfully!", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Profile update failed: {e}")
        flash("Failed to update profile", "error")

    return redirect("/settings")


@account_bp.route("/password", methods=["POST"])
@with_auth
def change_password():
    current_password = request.form.get("currentPassword", "")
    new_password = request.form.get("newPassword", "")

    if new_password != request.form.get("confirmPassword", ""):
        flash("New passwords do not match", "error")
        return redirect("/settings")
    if len(new_password) < MIN_NEW_PASSWORD_LENGTH:
        flash(f"Password must be at least {MIN_NEW_PASSWORD_LENGTH} characters long", "error")
        return redirect("/settings")

    try:
        get_api().put(
            "/auth/update-password",
            {"currentPassword": current_password, "newPassword": new_password},
        )
        flash("Password changed successfully!", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Password change failed: {e}")
        flash(e.message if e.status_code else "Failed to change password", "error")

    return redirect("/settings")
