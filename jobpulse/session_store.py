"""
Session Store.

Holds the current user, the user-type tag and the loading flag for one
request, and keeps the bearer token and role tag persisted in three places:

- the ``token``/``userType`` cookies (30-day expiry, the token cookie is httpOnly)
- the signed Flask session (the browser-side cache)
- the API client's default ``Authorization`` header

The token cookie is the source of truth; the session and the header are
read-through caches that are rewritten from it on every restore.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from flask import after_this_request, flash, g, request, session

from .api_client import DEFAULT_ERROR, ApiClient, ApiError, get_api
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# Role payload keys in the login/register response, in priority order
ROLE_KEYS = ("candidate", "employer", "admin", "user")

USER_TYPES = ("user", "employer", "admin")

DASHBOARD_ROUTES = {
    "admin": "/admin/dashboard",
    "employer": "/employer/dashboard",
    "user": "/user/dashboard",
}

TOKEN_KEY = "token"
USER_TYPE_KEY = "userType"
USER_KEY = "user"

# User fields cached in the cookie-backed session; the full record lives on g
SESSION_USER_FIELDS = (
    "_id",
    "name",
    "email",
    "role",
    "isVerified",
    "isProfileComplete",
    "profileCompletion",
)


@dataclass
class AuthResult:
    """Outcome of login/register. Failures are reported here, never raised."""
    success: bool
    error: Optional[str] = None
    redirect_to: Optional[str] = None


def dashboard_for(user_type: Optional[str]) -> str:
    """Dashboard route for a role; job seekers are the default."""
    return DASHBOARD_ROUTES.get(user_type or "user", DASHBOARD_ROUTES["user"])


def session_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Project a user record down to what the session cookie can carry."""
    return {key: user[key] for key in SESSION_USER_FIELDS if key in user}


def normalize_auth_payload(data: Dict[str, Any]) -> Tuple[str, Dict[str, Any], str]:
    """
    Extract (role, user, token) from a login/register response envelope.

    A normalized ``{"role", "user", "token"}`` envelope is used as-is. Otherwise
    the first role key present in ROLE_KEYS wins: ``candidate`` maps to ``user``
    and every other key passes through. Admins are always treated as verified.

    Raises:
        ApiError: if the envelope carries no token or no recognizable payload
    """
    token = data.get("token")
    if not token:
        raise ApiError("Authentication response did not include a token")

    role = data.get("role")
    if role in USER_TYPES and isinstance(data.get("user"), dict):
        user = dict(data["user"])
    else:
        for key in ROLE_KEYS:
            if data.get(key):
                role = "user" if key == "candidate" else key
                user = dict(data[key])
                break
        else:
            raise ApiError("Unrecognized authentication response")

    if role == "admin":
        user["isVerified"] = True

    return role, user, token


class SessionStore:
    """
    Per-request view of the authenticated session.

    Usage:
        store = get_session_store()
        if store.is_employer():
            ...
    """

    def __init__(self, api: ApiClient, settings: Optional[Settings] = None):
        self.api = api
        self.settings = settings or get_settings()
        self.user: Optional[Dict[str, Any]] = None
        self.user_type: Optional[str] = None
        self.loading = True
        # Cookie writes for this response; None means delete
        self.pending_cookies: Dict[str, Optional[str]] = {}
        self._cookie_hook_registered = False

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    def cookie(self, name: str) -> Optional[str]:
        """Current cookie value, including writes queued for this response."""
        if name in self.pending_cookies:
            return self.pending_cookies[name]
        return request.cookies.get(name)

    def _queue_cookie(self, name: str, value: Optional[str]) -> None:
        self.pending_cookies[name] = value
        if not self._cookie_hook_registered:
            after_this_request(self.apply_cookies)
            self._cookie_hook_registered = True

    def apply_cookies(self, response):
        max_age = self.settings.cookie_expiry_days * 24 * 60 * 60
        for name, value in self.pending_cookies.items():
            if value is None:
                response.delete_cookie(name)
            else:
                response.set_cookie(
                    name,
                    value,
                    max_age=max_age,
                    httponly=(name == TOKEN_KEY),
                    secure=self.settings.is_production,
                    samesite="Lax",
                )
        return response

    # ------------------------------------------------------------------
    # Credential persistence
    # ------------------------------------------------------------------

    def _persist_credential(self, token: str, user_type: str) -> None:
        self._queue_cookie(TOKEN_KEY, token)
        self._queue_cookie(USER_TYPE_KEY, user_type)
        session[TOKEN_KEY] = token
        session[USER_TYPE_KEY] = user_type
        session.permanent = True
        self.api.set_token(token)

    def _clear_credential(self) -> None:
        self._queue_cookie(TOKEN_KEY, None)
        self._queue_cookie(USER_TYPE_KEY, None)
        session.pop(TOKEN_KEY, None)
        session.pop(USER_TYPE_KEY, None)
        self.api.clear_token()

    def _set_user(self, user: Optional[Dict[str, Any]], user_type: Optional[str]) -> None:
        self.user = user
        self.user_type = user_type
        if user is None:
            session.pop(USER_KEY, None)
        else:
            session[USER_KEY] = session_user(user)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def restore(self) -> "SessionStore":
        """Rebuild the session from the stored credential and refresh the user."""
        token = request.cookies.get(TOKEN_KEY)
        saved_user_type = request.cookies.get(USER_TYPE_KEY)

        if not token:
            token = session.get(TOKEN_KEY)
            if token:
                self._queue_cookie(TOKEN_KEY, token)
        if not saved_user_type:
            saved_user_type = session.get(USER_TYPE_KEY)
            if saved_user_type:
                self._queue_cookie(USER_TYPE_KEY, saved_user_type)

        if not token:
            self._set_user(None, None)
            self.loading = False
            return self

        session[TOKEN_KEY] = token
        self.api.set_token(token)
        if saved_user_type:
            session[USER_TYPE_KEY] = saved_user_type
            self.user_type = saved_user_type
        self.user = session.get(USER_KEY)

        self.fetch_user(saved_user_type)
        return self

    def fetch_user(self, saved_user_type: Optional[str] = None) -> None:
        """
        Reconcile state with ``GET /auth/me``.

        401 clears the session. 403 means "authenticated but not verified": the
        current user is kept so the verification prompt can render.
        """
        self.loading = True
        try:
            response = self.api.get("/auth/me")
            data = response.get("data") or {}
            user_obj = data.get("user") or data.get("employer") or {}

            user = {**user_obj, "profileCompletion": data.get("profileCompletion")}
            if data.get("isProfileComplete") is not None:
                user["isProfileComplete"] = data["isProfileComplete"]

            if saved_user_type:
                user_type = saved_user_type
            elif data.get("userType"):
                user_type = data["userType"]
            elif (data.get("user") or {}).get("role") == "admin":
                user_type = "admin"
            elif data.get("employer"):
                user_type = "employer"
            else:
                user_type = "user"

            if user_type == "admin":
                user["isVerified"] = True

            self._set_user(user, user_type)
        except ApiError as e:
            if e.is_forbidden:
                logger.info("Current user is not verified; keeping session")
            elif e.is_unauthorized:
                logger.warning("Session rejected by backend (401); logging out")
                self.clear()
            else:
                logger.error(f"Error fetching user: {e}")
        finally:
            self.loading = False

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """Log in, persist the credential and return the role's dashboard route."""
        try:
            response = self.api.post("/auth/login", {"email": email, "password": password})
            user_type, user, token = normalize_auth_payload(response.get("data") or {})

            self._persist_credential(token, user_type)
            self._set_user(user, user_type)

            # Always reconcile with the backend's view of the user
            self.fetch_user(user_type)
            if not self.is_authenticated():
                raise ApiError("Your session could not be established. Please try again.")

            flash("Login successful!", "success")
            logger.info(f"Login succeeded (userType={user_type})")
            return AuthResult(success=True, redirect_to=dashboard_for(user_type))

        except ApiError as e:
            logger.error(f"Login error: {e}")
            message = e.message if e.message != DEFAULT_ERROR else "Login failed"
            return AuthResult(success=False, error=message)

    def register(self, user_data: Dict[str, Any], user_type: str = "user") -> AuthResult:
        """Register a job seeker or employer and sign them in."""
        endpoint = "/auth/register-employer" if user_type == "employer" else "/auth/register-user"
        role = "employer" if user_type == "employer" else "user"
        try:
            response = self.api.post(endpoint, user_data)
            _, user, token = normalize_auth_payload(response.get("data") or {})

            self._persist_credential(token, role)
            self._set_user(user, role)

            flash("Registration successful! Please check your email to verify your account.", "success")
            logger.info(f"Registration succeeded (userType={role})")
            return AuthResult(success=True, redirect_to=dashboard_for(role))

        except ApiError as e:
            logger.error(f"Registration error: {e}")
            message = e.message if e.message != DEFAULT_ERROR else "Registration failed"
            return AuthResult(success=False, error=message)

    def logout(self) -> str:
        """Invalidate the session (best effort on the backend) and return the home route."""
        if self.api.token:
            try:
                self.api.post("/auth/logout")
            except ApiError as e:
                logger.warning(f"Backend logout failed, clearing local session anyway: {e}")

        self.clear()
        flash("Logged out successfully", "success")
        return "/"

    def clear(self) -> None:
        """Drop the credential from every location and reset state."""
        self._clear_credential()
        self._set_user(None, None)

    def update_user(self, partial: Dict[str, Any]) -> None:
        """Shallow-merge into the current user; profileCompletion survives unless overridden."""
        if self.user is None:
            logger.warning("update_user called without a session user")
            return

        previous = self.user
        merged = {**previous, **partial}
        completion = partial.get("profileCompletion")
        merged["profileCompletion"] = (
            completion if completion is not None else previous.get("profileCompletion")
        )
        self._set_user(merged, self.user_type)

    # ------------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------------

    def is_authenticated(self) -> bool:
        return bool(self.user)

    def is_employer(self) -> bool:
        return self.user_type == "employer"

    def is_admin(self) -> bool:
        if self.user_type == "admin":
            return True
        return self.user_type == "user" and (self.user or {}).get("role") == "admin"

    def is_job_seeker(self) -> bool:
        return self.user_type == "user" and (self.user or {}).get("role") != "admin"


def get_session_store() -> SessionStore:
    """Get the restored session store for the current request."""
    if "session_store" not in g:
        g.session_store = SessionStore(get_api()).restore()
    return g.session_store
