"""
Email-verification gate.

Blocks protected views until the session user has verified their email, and
shows a prompt with "resend verification email" and "back to login" actions
instead. Meant to sit inside ``with_auth``; without a user it renders nothing.
"""

from functools import wraps

from flask import render_template

from .route_guard import render_placeholder
from .session_store import get_session_store


def verify_email_required(f):
    """Decorator to require a verified email before the view runs."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        store = get_session_store()
        if store.loading:
            return render_placeholder()
        if not store.user:
            return ""
        if store.user.get("isVerified"):
            return f(*args, **kwargs)
        return render_template("auth/verify_email_gate.html", user=store.user)
    return decorated_function
