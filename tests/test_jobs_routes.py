"""
Tests for the job pages in jobpulse/jobs.py
"""

import io

import pytest

from jobpulse.jobs import MAX_RESUME_BYTES


def job(job_id="j1", title="Python Developer", **fields):
    data = {"_id": job_id, "title": title, "company": "Acme", "location": "Remote", "description": "Build things"}
    data.update(fields)
    return data


@pytest.fixture
def job_backend(backend):
    backend.on("GET", "/jobs/j1", 200, {"success": True, "data": {"job": job()}})
    backend.on("GET", "/jobs", 200, {"success": True, "data": {"jobs": [job("j2", "Go Developer")]}})
    return backend


class TestListJobs:

    def test_filters_passed_through(self, client, backend):
        backend.on("GET", "/jobs", 200, {
            "success": True,
            "data": {"jobs": [job()], "pagination": {"page": 1, "pages": 3}},
        })

        response = client.get("/jobs?search=python&location=Berlin&jobType=full-time&unknown=x")

        assert response.status_code == 200
        assert b"Python Developer" in response.data
        assert b"Page 1 of 3" in response.data
        _, _, kwargs = backend.called("GET", "/jobs")[0]
        assert kwargs["params"] == {"search": "python", "location": "Berlin", "jobType": "full-time"}

    def test_backend_error_shown_inline(self, client, backend):
        backend.on("GET", "/jobs", 500, {"success": False, "error": "Database unavailable"})

        response = client.get("/jobs")

        assert response.status_code == 200
        assert b"Database unavailable" in response.data


class TestJobDetail:

    def test_public_detail(self, client, job_backend):
        response = client.get("/jobs/j1")

        assert response.status_code == 200
        assert b"Python Developer" in response.data
        assert b"Go Developer" in response.data
        assert b"Log in as a job seeker to apply" in response.data
        _, _, kwargs = job_backend.called("GET", "/jobs")[0]
        assert kwargs["params"] == {"limit": 3, "exclude": "j1"}
        assert job_backend.called("GET", "/applications/check/j1") == []

    def test_seeker_sees_applied_and_saved_state(self, client, job_backend, login_as):
        login_as("user")
        job_backend.on("GET", "/applications/check/j1", 200, {
            "success": True, "hasApplied": True, "application": {"status": "reviewed"},
        })
        job_backend.on("GET", "/users/saved-jobs", 200, {
            "success": True, "data": {"savedJobs": [{"job": {"_id": "j1"}}]},
        })

        response = client.get("/jobs/j1")

        assert b"You applied for this job" in response.data
        assert b"Status: reviewed" in response.data
        assert b"Unsave job" in response.data

    def test_status_check_failure_is_not_fatal(self, client, job_backend, login_as):
        login_as("user")
        job_backend.on("GET", "/applications/check/j1", 500, {"error": "boom"})
        job_backend.on("GET", "/users/saved-jobs", 500, {"error": "boom"})

        response = client.get("/jobs/j1")

        assert response.status_code == 200
        assert b"Apply now" in response.data

    def test_missing_job_redirects_to_listing(self, client, backend):
        backend.on("GET", "/jobs/nope", 404, {"success": False, "error": "Job not found"})

        response = client.get("/jobs/nope")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/jobs")


class TestApply:

    def test_apply_with_resume(self, client, backend, login_as):
        login_as("user")
        backend.on("POST", "/applications", 201, {"success": True})

        response = client.post("/jobs/j1/apply", data={
            "coverLetter": "Hire me",
            "resume": (io.BytesIO(b"%PDF-1.4"), "cv.pdf", "application/pdf"),
        }, content_type="multipart/form-data")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/jobs/j1")
        _, _, kwargs = backend.called("POST", "/applications")[0]
        assert kwargs["data"] == {"jobId": "j1", "coverLetter": "Hire me"}
        assert kwargs["files"]["resume"][0] == "cv.pdf"

    def test_oversized_resume_rejected(self, client, backend, login_as):
        login_as("user")

        client.post("/jobs/j1/apply", data={
            "resume": (io.BytesIO(b"x" * (MAX_RESUME_BYTES + 1)), "cv.pdf"),
        }, content_type="multipart/form-data")

        assert backend.called("POST", "/applications") == []

    def test_employer_cannot_apply(self, client, backend, login_as):
        login_as("employer")

        response = client.post("/jobs/j1/apply", data={"coverLetter": "x"})

        assert response.status_code == 302
        assert backend.called("POST", "/applications") == []


class TestToggleSaved:

    def test_save(self, client, backend, login_as):
        login_as("user")
        backend.on("POST", "/users/saved-jobs", 201, {"success": True})

        response = client.post("/jobs/j1/save", data={"saved": "false"})

        assert response.headers["Location"].endswith("/jobs/j1")
        assert backend.called("POST", "/users/saved-jobs")[0][2]["json"] == {"jobId": "j1"}

    def test_unsave_returns_to_next(self, client, backend, login_as):
        login_as("user")
        backend.on("DELETE", "/users/saved-jobs/j1", 200, {"success": True})

        response = client.post("/jobs/j1/save", data={"saved": "true", "next": "/user/saved-jobs"})

        assert response.headers["Location"].endswith("/user/saved-jobs")
        assert backend.called("DELETE", "/users/saved-jobs/j1")

    def test_expired_session_sent_to_login(self, client, backend, login_as):
        login_as("user")
        backend.on("POST", "/users/saved-jobs", 401, {"success": False, "error": "Not authorized"})

        response = client.post("/jobs/j1/save", data={"saved": "false"})

        assert response.headers["Location"].endswith("/auth/login")
        assert client.get_cookie("token") is None
