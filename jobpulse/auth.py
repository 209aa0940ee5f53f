"""
Authentication Blueprint.

Login, registration, logout, email verification and password reset pages.
The session work itself lives in SessionStore; these views handle forms,
validation and navigation.
"""

import logging
import re

from flask import Blueprint, flash, redirect, render_template, request

from .api_client import ApiError, get_api
from .session_store import get_session_store

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
ACCOUNT_TYPES = ("user", "employer")


def safe_next(default: str = "/") -> str:
    """Only follow local redirect targets from form/query input."""
    target = request.form.get("next") or request.args.get("next") or ""
    if target.startswith("/") and not target.startswith("//"):
        return target
    return default


def validate_registration(form, user_type: str) -> dict:
    """Return field -> message for invalid registration input."""
    errors = {}
    name = form.get("name", "").strip()
    if not 2 <= len(name) <= 100:
        errors["name"] = "Name must be between 2 and 100 characters"
    if not EMAIL_RE.match(form.get("email", "").strip()):
        errors["email"] = "Please enter a valid email"
    password = form.get("password", "")
    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    elif form.get("confirm_password") is not None and form.get("confirm_password") != password:
        errors["confirm_password"] = "Passwords do not match"
    if user_type == "employer" and not 2 <= len(form.get("company", "").strip()) <= 200:
        errors["company"] = "Company name must be between 2 and 200 characters"
    return errors


# ============================================================================
# Login / Register / Logout
# ============================================================================

@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    """Handle login page and authentication."""
    if request.method == "GET":
        return render_template("auth/login.html", error=None)

    email = request.form.get("email", "").strip()
    password = request.form.get("password", "")
    if not email or not password:
        return render_template("auth/login.html", error="Email and password are required", email=email), 400

    result = get_session_store().login(email, password)
    if result.success:
        return redirect(result.redirect_to)
    return render_template("auth/login.html", error=result.error, email=email), 401


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    """Registration for job seekers and employers."""
    user_type = request.values.get("type", "user")
    if user_type not in ACCOUNT_TYPES:
        user_type = "user"

    if request.method == "GET":
        return render_template("auth/register.html", user_type=user_type, errors={}, form={})

    errors = validate_registration(request.form, user_type)
    if errors:
        return render_template(
            "auth/register.html", user_type=user_type, errors=errors, form=request.form
        ), 400

    payload = {
        "name": request.form["name"].strip(),
        "email": request.form["email"].strip(),
        "password": request.form["password"],
    }
    if user_type == "employer":
        payload["company"] = request.form["company"].strip()

    result = get_session_store().register(payload, user_type)
    if result.success:
        return redirect(result.redirect_to)
    return render_template(
        "auth/register.html", user_type=user_type, errors={"form": result.error}, form=request.form
    ), 400


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """Handle logout."""
    home = get_session_store().logout()
    return redirect(safe_next(home))


# ============================================================================
# Email Verification
# ============================================================================

@auth_bp.route("/verify", methods=["GET"])
def verify_email():
    """Landing page for the link in the verification email."""
    token = request.args.get("token")
    if not token:
        return render_template("auth/verify.html", verified=False, message="Invalid verification link."), 400

    try:
        response = get_api().post("/auth/verify-email", {"token": token})
        message = response.get("message") or "Email verified successfully! You can now log in."
        store = get_session_store()
        if store.user:
            store.update_user({"isVerified": True})
        return render_template("auth/verify.html", verified=True, message=message)
    except ApiError as e:
        logger.warning(f"Email verification failed: {e}")
        return render_template("auth/verify.html", verified=False, message=e.message), 400


@auth_bp.route("/resend-verification", methods=["POST"])
def resend_verification():
    """Resend the verification email for the session user (or a given address)."""
    store = get_session_store()
    email = (store.user or {}).get("email") or request.form.get("email", "").strip()
    if not email:
        flash("Email is required to resend verification.", "error")
        return redirect(safe_next("/dashboard"))

    try:
        get_api().post("/auth/resend-verification", {"email": email})
        flash("Verification email sent! Please check your inbox.", "success")
    except ApiError as e:
        logger.warning(f"Resend verification failed for {email}: {e}")
        flash(e.message if e.status_code else "Failed to resend verification email.", "error")

    return redirect(safe_next("/dashboard"))


# ============================================================================
# Password Reset
# ============================================================================

@auth_bp.route("/forgot-password", methods=["GET", "POST"])
def forgot_password():
    """Request a password reset email."""
    if request.method == "GET":
        return render_template("auth/forgot_password.html", sent=False)

    email = request.form.get("email", "").strip()
    user_type = request.form.get("userType", "user")
    if not EMAIL_RE.match(email) or user_type not in ACCOUNT_TYPES:
        flash("Please enter a valid email and account type.", "error")
        return render_template("auth/forgot_password.html", sent=False, email=email), 400

    try:
        response = get_api().post("/auth/forgot-password", {"email": email, "userType": user_type})
        flash(response.get("message") or "Password reset email sent.", "success")
        return render_template("auth/forgot_password.html", sent=True, email=email)
    except ApiError as e:
        logger.warning(f"Forgot password failed: {e}")
        flash(e.message, "error")
        return render_template("auth/forgot_password.html", sent=False, email=email), 400


@auth_bp.route("/reset-password", methods=["GET", "POST"])
def reset_password():
    """Choose a new password using the token from the reset email."""
    token = request.values.get("token")
    if not token:
        flash("Invalid or missing reset token.", "error")
        return redirect("/auth/forgot-password")

    if request.method == "GET":
        return render_template("auth/reset_password.html", token=token)

    password = request.form.get("password", "")
    user_type = request.form.get("userType", "user")
    if len(password) < MIN_PASSWORD_LENGTH:
        flash(f"New password must be at least {MIN_PASSWORD_LENGTH} characters", "error")
        return render_template("auth/reset_password.html", token=token), 400
    if password != request.form.get("confirm_password", ""):
        flash("Passwords do not match", "error")
        return render_template("auth/reset_password.html", token=token), 400
    if user_type not in ACCOUNT_TYPES:
        user_type = "user"

    try:
        response = get_api().put(
            "/auth/reset-password",
            {"token": token, "password": password, "userType": user_type},
        )
        flash(response.get("message") or "Password reset successfully. You can now log in.", "success")
        return redirect("/auth/login")
    except ApiError as e:
        logger.warning(f"Password reset failed: {e}")
        flash(e.message, "error")
        return render_template("auth/reset_password.html", token=token), 400
