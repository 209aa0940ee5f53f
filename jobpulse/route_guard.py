"""
Route protection based on authentication and user role.

``with_auth`` wraps a view so that it only runs for an authorized session.
Everything else gets a redirect (at most one per request, and only when the
redirect guard allows it) or a loading placeholder. The protected view is
never executed for an unauthorized session, so no content can flash.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Iterable, Optional, Union
from urllib.parse import urlparse

from flask import g, redirect, render_template, request

from .redirect_guard import get_redirect_guard
from .session_store import SessionStore, get_session_store

logger = logging.getLogger(__name__)

AUTH_PAGES = ("/auth/login", "/auth/register")

COMPLETE_PROFILE_ROUTES = {
    "user": "/user/complete-profile",
    "employer": "/employer/complete-profile",
}

RoleSpec = Optional[Union[str, Iterable[str]]]


class GuardState(str, Enum):
    LOADING = "loading"
    REDIRECTING = "redirecting"
    RENDERING = "rendering"


@dataclass
class GuardDecision:
    state: GuardState
    redirect_to: Optional[str] = None


def allowed_user_types(required_user_type: RoleSpec) -> tuple:
    if not required_user_type:
        return ()
    if isinstance(required_user_type, str):
        return (required_user_type,)
    return tuple(required_user_type)


def has_access(store: SessionStore, required_user_type: RoleSpec) -> bool:
    """Check the session role against the allowed set."""
    allowed = allowed_user_types(required_user_type)
    if not allowed:
        return True
    if "admin" in allowed and store.user_type == "admin" and store.is_admin():
        return True
    if "employer" in allowed and store.user_type == "employer" and store.is_employer():
        return True
    if "user" in allowed and store.user_type == "user" and store.is_job_seeker():
        return True
    return False


def evaluate_access(
    store: SessionStore,
    path: str,
    required_user_type: RoleSpec = None,
    redirect_to: str = "/auth/login",
) -> GuardDecision:
    """
    Decide what a guarded view should do for the current session.

    loading -> LOADING; no user -> REDIRECTING to ``redirect_to`` (no target
    when already on an auth page); wrong role -> REDIRECTING to ``/``;
    incomplete profile -> REDIRECTING to the role's complete-profile page;
    otherwise RENDERING.
    """
    if store.loading:
        return GuardDecision(GuardState.LOADING)

    if not store.is_authenticated():
        if path.startswith(AUTH_PAGES):
            return GuardDecision(GuardState.REDIRECTING)
        return GuardDecision(GuardState.REDIRECTING, redirect_to)

    if not has_access(store, required_user_type):
        return GuardDecision(GuardState.REDIRECTING, "/")

    complete_profile = COMPLETE_PROFILE_ROUTES.get(store.user_type)
    if complete_profile and store.user.get("isProfileComplete") is False and path != complete_profile:
        return GuardDecision(GuardState.REDIRECTING, complete_profile)

    return GuardDecision(GuardState.RENDERING)


def render_placeholder():
    """
    Spinner page shown while loading or while a redirect is pending.

    Only GET and HEAD get the spinner; other methods are sent back to the
    referring page on this host.
    """
    if request.method in ("GET", "HEAD"):
        return render_template("partials/loading.html")
    return redirect(_local_referrer())


def _local_referrer() -> str:
    """Path of the referring page on this host, or ``/``."""
    referrer = urlparse(request.referrer or "")
    if referrer.netloc and referrer.netloc != request.host:
        return "/"
    if not referrer.path.startswith("/") or referrer.path.startswith("//") or referrer.path == request.path:
        return "/"
    if referrer.query:
        return f"{referrer.path}?{referrer.query}"
    return referrer.path


def guarded_redirect(to_path: str):
    """Redirect once per request, subject to the redirect guard; else the placeholder."""
    if g.get("guard_redirected"):
        return render_placeholder()
    if not get_redirect_guard().can_redirect(request.path, to_path):
        return render_placeholder()
    g.guard_redirected = True
    return redirect(to_path)


def with_auth(view=None, *, required_user_type: RoleSpec = None, redirect_to: str = "/auth/login"):
    """
    Decorator to require an authenticated (and optionally role-checked) session.

    Usage:
        @bp.route("/admin/dashboard")
        @with_auth(required_user_type="admin")
        def admin_dashboard(): ...

        @bp.route("/dashboard")
        @with_auth
        def dashboard(): ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            store = get_session_store()
            decision = evaluate_access(store, request.path, required_user_type, redirect_to)

            if decision.state is GuardState.RENDERING:
                return f(*args, **kwargs)
            if decision.state is GuardState.REDIRECTING and decision.redirect_to:
                logger.info(f"Route guard redirect: {request.path} -> {decision.redirect_to}")
                return guarded_redirect(decision.redirect_to)
            return render_placeholder()
        return decorated_function

    if view is not None:
        return decorator(view)
    return decorator
