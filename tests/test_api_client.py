"""
Unit tests for jobpulse/api_client.py

Tests the backend client: URL building, JSON decoding, error mapping,
the GET retry on transient failures, and the per-request client on flask.g.
"""

import pytest
import requests
from flask import g, session

from jobpulse.api_client import DEFAULT_ERROR, ApiClient, ApiError, close_api, data_of, get_api

from conftest import API_BASE_URL, create_mock_response


@pytest.fixture
def api(backend):
    return ApiClient(API_BASE_URL, timeout=7)


class TestRequests:

    def test_get_decodes_json(self, api, backend):
        backend.on("GET", "/jobs", 200, {"success": True, "data": {"jobs": [{"_id": "j1"}]}})

        payload = api.get("/jobs", params={"limit": 3})

        assert payload["data"]["jobs"] == [{"_id": "j1"}]
        method, path, kwargs = backend.calls[0]
        assert (method, path) == ("GET", "/jobs")
        assert kwargs["params"] == {"limit": 3}
        assert kwargs["timeout"] == 7

    def test_path_without_leading_slash(self, api, backend):
        backend.on("GET", "/auth/me", 200, {"success": True})
        api.get("auth/me")
        assert backend.calls[0][1] == "/auth/me"

    def test_post_sends_json(self, api, backend):
        backend.on("POST", "/auth/login", 200, {"success": True})

        api.post("/auth/login", {"email": "a@b.co", "password": "x"})

        assert backend.calls[0][2]["json"] == {"email": "a@b.co", "password": "x"}

    def test_empty_body(self, api, mocker):
        response = create_mock_response(204, None)
        mocker.patch("requests.Session.request", return_value=response)

        assert api.delete("/users/saved-jobs/j1") == {}

    def test_upload_drops_json_content_type(self, api, backend):
        backend.on("POST", "/applications", 201, {"success": True})

        api.upload("/applications", files={"resume": ("cv.pdf", b"%PDF", "application/pdf")}, data={"jobId": "j1"})

        kwargs = backend.calls[0][2]
        assert kwargs["headers"] == {"Content-Type": None}
        assert kwargs["data"] == {"jobId": "j1"}
        assert "resume" in kwargs["files"]


class TestErrors:

    def test_error_field_used_as_message(self, api, backend):
        backend.on("POST", "/auth/login", 401, {"success": False, "error": "Invalid credentials"})

        with pytest.raises(ApiError) as exc_info:
            api.post("/auth/login", {})

        assert exc_info.value.message == "Invalid credentials"
        assert exc_info.value.is_unauthorized

    def test_message_field_fallback(self, api, backend):
        backend.on("GET", "/jobs/x", 404, {"message": "Job not found"})

        with pytest.raises(ApiError) as exc_info:
            api.get("/jobs/x")

        assert exc_info.value.message == "Job not found"
        assert exc_info.value.status_code == 404

    def test_default_message(self, api, backend):
        backend.on("GET", "/auth/me", 403, {})

        with pytest.raises(ApiError) as exc_info:
            api.get("/auth/me")

        assert exc_info.value.message == DEFAULT_ERROR
        assert exc_info.value.is_forbidden

    def test_server_error_not_retried(self, api, backend):
        backend.on("GET", "/jobs", 500, {"error": "boom"})

        with pytest.raises(ApiError):
            api.get("/jobs")

        assert len(backend.calls) == 1


class TestTransientFailures:

    def test_get_timeout_retried_once(self, api, backend):
        backend.raise_on("GET", "/jobs", requests.exceptions.Timeout())

        with pytest.raises(ApiError) as exc_info:
            api.get("/jobs")

        assert exc_info.value.status_code == 504
        assert len(backend.calls) == 2

    def test_get_connection_error_retried_once(self, api, backend):
        backend.raise_on("GET", "/jobs", requests.exceptions.ConnectionError())

        with pytest.raises(ApiError) as exc_info:
            api.get("/jobs")

        assert exc_info.value.status_code == 503
        assert len(backend.calls) == 2

    def test_get_recovers_on_retry(self, api, mocker):
        mocker.patch("requests.Session.request", side_effect=[
            requests.exceptions.ConnectionError(),
            create_mock_response(200, {"success": True, "data": {"jobs": []}}),
        ])

        assert data_of(api.get("/jobs")) == {"jobs": []}

    def test_post_not_retried(self, api, backend):
        backend.raise_on("POST", "/auth/login", requests.exceptions.ConnectionError())

        with pytest.raises(ApiError):
            api.post("/auth/login", {})

        assert len(backend.calls) == 1


class TestToken:

    def test_set_and_clear(self, api):
        assert api.token is None

        api.set_token("abc")
        assert api.token == "abc"
        assert api.http.headers["Authorization"] == "Bearer abc"

        api.clear_token()
        assert api.token is None
        assert "Authorization" not in api.http.headers


class TestRequestScopedClient:

    def test_one_client_per_request(self, app):
        with app.test_request_context("/"):
            assert get_api() is get_api()

    def test_token_seeded_from_cookie(self, app):
        with app.test_request_context("/", headers={"Cookie": "token=t1"}):
            assert get_api().token == "t1"

    def test_token_seeded_from_session(self, app):
        with app.test_request_context("/"):
            session["token"] = "t2"
            assert get_api().token == "t2"

    def test_close_api(self, app, mocker):
        with app.test_request_context("/"):
            client = get_api()
            close_spy = mocker.spy(client.http, "close")
            close_api()
            close_spy.assert_called_once()
            assert "api_client" not in g


def test_data_of():
    assert data_of({"success": True, "data": {"user": {}}}) == {"user": {}}
    assert data_of({"success": True}) == {}
