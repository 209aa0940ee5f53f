"""
Pytest fixtures for the JobPulse web client tests.

Backend calls are mocked at the ``requests.Session.request`` seam, so the API
client, session store and views all run for real against canned responses.
"""

import os
from unittest.mock import MagicMock

import pytest

API_BASE_URL = "http://backend.test/api"

# Set before any test module imports jobpulse.app
os.environ["FLASK_SECRET_KEY"] = "test-secret-key"
os.environ["FLASK_ENV"] = "testing"
os.environ["API_BASE_URL"] = API_BASE_URL


@pytest.fixture(autouse=True)
def fresh_settings():
    """Each test sees settings loaded from the current environment."""
    from jobpulse.config import reset_settings
    reset_settings()
    yield
    reset_settings()


def create_mock_response(status_code, json_data):
    """Helper to create a mock Response object."""
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    mock_resp.json.return_value = json_data
    mock_resp.content = b"{}" if json_data is not None else b""
    return mock_resp


class FakeBackend:
    """
    Canned backend keyed by (METHOD, path).

    Unregistered calls return 404 so a missing stub shows up as a failed page
    instead of a hang.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, path, status_code=200, json_data=None):
        self.routes[(method.upper(), path)] = (status_code, json_data if json_data is not None else {})
        return self

    def raise_on(self, method, path, exc):
        self.routes[(method.upper(), path)] = exc
        return self

    def __call__(self, method, url, **kwargs):
        path = url[len(API_BASE_URL):] if url.startswith(API_BASE_URL) else url
        self.calls.append((method.upper(), path, kwargs))
        route = self.routes.get((method.upper(), path))
        if route is None:
            return create_mock_response(404, {"success": False, "error": "Not found"})
        if isinstance(route, Exception):
            raise route
        status_code, json_data = route
        return create_mock_response(status_code, json_data)

    def called(self, method, path):
        return [c for c in self.calls if c[0] == method.upper() and c[1] == path]


@pytest.fixture
def backend(mocker):
    """Fake backend wired into every requests.Session."""
    fake = FakeBackend()
    mocker.patch("requests.Session.request", side_effect=fake)
    return fake


@pytest.fixture
def app(backend):
    """Flask app fixture with test configuration."""
    from jobpulse.app import app
    app.config['TESTING'] = True
    app.config['API_BASE_URL'] = API_BASE_URL
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


def make_user(role="user", **overrides):
    user = {
        "_id": f"{role}-1",
        "name": f"Test {role.title()}",
        "email": f"{role}@example.com",
        "role": role,
        "isVerified": True,
    }
    user.update(overrides)
    return user


@pytest.fixture
def login_as(client, backend):
    """
    Seed a signed-in session for a role.

    Sets the token/userType cookies and stubs ``GET /auth/me`` so every page
    load restores the given user.
    """
    def _login(role="user", **user_fields):
        user = make_user(role, **user_fields)
        data = {"employer": user} if role == "employer" else {"user": user}
        data["isProfileComplete"] = True
        backend.on("GET", "/auth/me", 200, {"success": True, "data": data})
        client.set_cookie("token", f"{role}-token")
        client.set_cookie("userType", role)
        return user
    return _login
