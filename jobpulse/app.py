"""
Flask application for the JobPulse web client.

Server-rendered pages for the JobPulse job board. Every page talks to the
JobPulse REST backend through a per-request API client; the signed-in
identity lives in the token cookie and the Flask session.

Stack: Flask + Jinja + Tailwind CSS (CDN)
"""

import logging

from flask import Flask, flash, jsonify, redirect, render_template, request, session

from .account import account_bp
from .api_client import ApiError, close_api, get_api
from .auth import auth_bp
from .config import get_settings
from .dashboards import dashboard_bp
from .jobs import jobs_bp
from .notifications import notifications_bp
from .pages import pages_bp
from .redirect_guard import save_redirect_guard
from .session_store import get_session_store
from .version import __version__

APP_VERSION = __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

settings = get_settings()

app = Flask(__name__)

app.secret_key = settings.secret_key
app.config["API_BASE_URL"] = settings.api_base_url

# Cookie security settings
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SECURE"] = settings.is_production

# SameSite=None requires Secure, so it is only used in production (HTTPS)
if settings.is_production:
    app.config["SESSION_COOKIE_SAMESITE"] = "None"
else:
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"

app.config["PERMANENT_SESSION_LIFETIME"] = 60 * 60 * 24 * settings.cookie_expiry_days

for blueprint in (pages_bp, auth_bp, dashboard_bp, jobs_bp, account_bp, notifications_bp):
    app.register_blueprint(blueprint)

app.teardown_appcontext(close_api)
app.after_request(save_redirect_guard)

THEME = "dark"


@app.before_request
def force_dark_theme():
    """The UI ships a single dark theme; any stored preference is overwritten."""
    if session.get("theme") != THEME:
        session["theme"] = THEME


@app.context_processor
def inject_globals():
    """Inject version, theme and the session user into all templates."""
    store = get_session_store()
    return {
        "version": APP_VERSION,
        "theme": THEME,
        "current_user": store.user,
        "user_type": store.user_type,
        "is_authenticated": store.is_authenticated(),
    }


@app.errorhandler(ApiError)
def handle_api_error(e: ApiError):
    """
    Backend errors that escape a view.

    401 means the stored credential is no longer valid: clear it everywhere
    and send the browser to the login page.
    """
    if e.is_unauthorized:
        logger.warning(f"Backend returned 401 for {request.path}; clearing session")
        get_session_store().clear()
        if request.path != "/auth/login":
            flash("Your session has expired. Please log in again.", "error")
            return redirect("/auth/login")

    status = e.status_code if e.status_code and e.status_code >= 400 else 500
    logger.error(f"Unhandled API error on {request.path}: {e}")
    return render_template("errors/error.html", status=status, message=e.message), status


@app.errorhandler(404)
def not_found(e):
    return render_template("errors/not_found.html"), 404


@app.route("/health", methods=["GET"])
def health_check():
    """
    Public health endpoint for external monitoring.

    Returns minimal info: the client version and whether the backend answers.
    """
    try:
        get_api().get("/health")
        backend_status = "healthy"
    except ApiError:
        backend_status = "unreachable"

    return jsonify({
        "status": "healthy" if backend_status == "healthy" else "degraded",
        "version": APP_VERSION,
        "services": {
            "backend": backend_status,
        },
    })


# ============================================================================
# Application Entry Point
# ============================================================================

if __name__ == "__main__":
    print(f"Starting JobPulse on http://localhost:{settings.port}")
    print(f"Backend API: {settings.api_base_url}")
    app.run(host="0.0.0.0", port=settings.port, debug=settings.debug)
