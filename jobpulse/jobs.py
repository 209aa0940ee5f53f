"""
Jobs Blueprint.

Public job listing and detail pages, plus the apply and save actions for
signed-in job seekers.

Blueprint prefix: /jobs
"""

import logging

from flask import Blueprint, flash, redirect, render_template, request

from .api_client import ApiError, data_of, get_api
from .auth import safe_next
from .route_guard import with_auth
from .session_store import get_session_store

logger = logging.getLogger(__name__)

jobs_bp = Blueprint("jobs", __name__, url_prefix="/jobs")

# Query parameters forwarded to GET /jobs
JOB_FILTERS = ("search", "location", "jobType", "experienceLevel", "category", "salaryMin", "salaryMax", "sort", "page", "limit")

MAX_RESUME_BYTES = 5 * 1024 * 1024  # 5MB


def _job_filters() -> dict:
    return {key: request.args[key] for key in JOB_FILTERS if request.args.get(key)}


# ------------------------------------------------------------------
# Listing / detail
# ------------------------------------------------------------------

@jobs_bp.route("")
def list_jobs():
    """Job search page; filters are passed straight through to the backend."""
    filters = _job_filters()
    try:
        data = data_of(get_api().get("/jobs", params=filters))
        return render_template(
            "jobs/index.html",
            jobs=data.get("jobs") or [],
            pagination=data.get("pagination") or {},
            filters=filters,
        )
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Job listing error: {e}")
        return render_template("jobs/index.html", jobs=[], pagination={}, filters=filters, error=e.message)


@jobs_bp.route("/<job_id>")
def job_detail(job_id: str):
    """Job detail with related jobs; job seekers also see applied/saved state."""
    api = get_api()
    try:
        job = data_of(api.get(f"/jobs/{job_id}")).get("job")
        related = data_of(api.get("/jobs", params={"limit": 3, "exclude": job_id})).get("jobs") or []
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Job detail error for {job_id}: {e}")
        flash("Failed to load job details", "error")
        return redirect("/jobs")

    if not job:
        flash("Job not found", "error")
        return redirect("/jobs")

    has_applied = False
    application = None
    is_saved = False
    store = get_session_store()
    if store.is_authenticated() and store.user_type == "user":
        try:
            status = api.get(f"/applications/check/{job_id}")
            has_applied = bool(status.get("hasApplied"))
            application = status.get("application")
        except ApiError as e:
            logger.warning(f"Failed to check application status for {job_id}: {e}")
        try:
            saved_jobs = data_of(api.get("/users/saved-jobs", params={"limit": 100})).get("savedJobs") or []
            is_saved = any(_saved_job_id(item) == job_id for item in saved_jobs)
        except ApiError as e:
            logger.warning(f"Failed to check saved status for {job_id}: {e}")

    return render_template(
        "jobs/detail.html",
        job=job,
        related_jobs=related,
        has_applied=has_applied,
        application=application,
        is_saved=is_saved,
    )


def _saved_job_id(item: dict) -> str:
    job = item.get("job")
    if isinstance(job, dict):
        return job.get("_id")
    return job


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------

@jobs_bp.route("/<job_id>/apply", methods=["POST"])
@with_auth(required_user_type="user")
def apply(job_id: str):
    """Submit an application with an optional resume upload."""
    form = {"jobId": job_id, "coverLetter": request.form.get("coverLetter", "")}
    files = {}

    resume = request.files.get("resume")
    if resume and resume.filename:
        content = resume.read()
        if len(content) > MAX_RESUME_BYTES:
            flash("File size must be less than 5MB", "error")
            return redirect(f"/jobs/{job_id}")
        files["resume"] = (resume.filename, content, resume.mimetype)

    try:
        get_api().upload("/applications", files=files, data=form)
        flash("Application submitted successfully!", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Application for job {job_id} failed: {e}")
        flash(e.message if e.status_code else "Failed to submit application", "error")

    return redirect(f"/jobs/{job_id}")


@jobs_bp.route("/<job_id>/save", methods=["POST"])
@with_auth(required_user_type="user")
def toggle_saved(job_id: str):
    """Save or unsave a job, depending on the ``saved`` flag the page posts back."""
    api = get_api()
    currently_saved = request.form.get("saved") == "true"
    try:
        if currently_saved:
            api.delete(f"/users/saved-jobs/{job_id}")
            flash("Job removed from saved list", "success")
        else:
            api.post("/users/saved-jobs", {"jobId": job_id})
            flash("Job saved successfully", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to toggle saved job {job_id}: {e}")
        flash(e.message if e.status_code else "Failed to update saved status", "error")

    return redirect(safe_next(f"/jobs/{job_id}"))
