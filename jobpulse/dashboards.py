"""
Dashboards Blueprint.

Role-specific pages for job seekers, employers and admins.

Every view here is wrapped in ``with_auth``; pages that need a verified email
are additionally wrapped in ``verify_email_required``.
"""

import logging
from collections import Counter

from flask import Blueprint, flash, redirect, render_template, request

from .api_client import ApiError, data_of, get_api
from .auth import safe_next
from .route_guard import guarded_redirect, with_auth
from .session_store import dashboard_for, get_session_store
from .verify_gate import verify_email_required

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint("dashboards", __name__)

APPLICATION_STATUSES = ["pending", "reviewed", "shortlisted", "interview", "accepted", "rejected"]

ADMIN_RESOURCES = ("users", "employers", "jobs", "applications")

JOB_APPLICANTS_LIMIT = 100

AUDIT_LOGS_PAGE_SIZE = 20
AUDIT_TARGET_TYPES = ("User", "Employer", "Job")

NOTIFICATION_PRIORITIES = ("low", "normal", "high", "urgent")


def _page_params(*keys: str) -> dict:
    return {key: request.args[key] for key in ("page", "limit", "search") + keys if request.args.get(key)}


# ------------------------------------------------------------------
# Dispatcher
# ------------------------------------------------------------------

@dashboard_bp.route("/dashboard")
@with_auth
def dashboard():
    """Send the session user to their role's dashboard."""
    return guarded_redirect(dashboard_for(get_session_store().user_type))


# ------------------------------------------------------------------
# Job seeker
# ------------------------------------------------------------------

@dashboard_bp.route("/user/dashboard")
@with_auth(required_user_type="user")
def user_dashboard():
    """Applications summary and a few recommended jobs."""
    api = get_api()
    try:
        applications = data_of(api.get("/applications/user")).get("applications") or []
        recommended = data_of(api.get("/jobs", params={"limit": 5})).get("jobs") or []
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"User dashboard error: {e}")
        return render_template("user/dashboard.html", applications=[], jobs=[], stats={}, error=e.message)

    counts = Counter(item.get("status") for item in applications)
    stats = {
        "totalApplications": len(applications),
        "pendingApplications": counts["pending"],
        "acceptedApplications": counts["accepted"],
        "rejectedApplications": counts["rejected"],
    }
    return render_template("user/dashboard.html", applications=applications, jobs=recommended, stats=stats)


@dashboard_bp.route("/user/applications")
@with_auth(required_user_type="user")
@verify_email_required
def user_applications():
    try:
        applications = data_of(get_api().get("/applications/user")).get("applications") or []
        return render_template("user/applications.html", applications=applications)
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Failed to load applications: {e}")
        return render_template("user/applications.html", applications=[], error="Failed to load applications")


@dashboard_bp.route("/user/saved-jobs")
@with_auth(required_user_type="user")
def saved_jobs():
    try:
        items = data_of(get_api().get("/users/saved-jobs")).get("savedJobs") or []
        return render_template("user/saved_jobs.html", saved_jobs=items)
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Failed to fetch saved jobs: {e}")
        return render_template("user/saved_jobs.html", saved_jobs=[], error="Failed to load saved jobs")


@dashboard_bp.route("/user/saved-jobs/<job_id>/remove", methods=["POST"])
@with_auth(required_user_type="user")
def remove_saved_job(job_id: str):
    try:
        get_api().delete(f"/users/saved-jobs/{job_id}")
        flash("Job removed from saved list", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to remove saved job {job_id}: {e}")
        flash("Failed to remove job", "error")
    return redirect("/user/saved-jobs")


@dashboard_bp.route("/user/profile")
@with_auth(required_user_type="user")
def user_profile():
    return render_template("user/profile.html", user=get_session_store().user)


@dashboard_bp.route("/user/complete-profile", methods=["GET", "POST"])
@with_auth(required_user_type="user")
def user_complete_profile():
    """Collect the remaining job-seeker profile fields."""
    store = get_session_store()
    if request.method == "GET":
        return render_template("user/complete_profile.html", user=store.user)

    payload = {
        "phone": request.form.get("phone", "").strip(),
        "location": request.form.get("location", "").strip(),
        "headline": request.form.get("headline", "").strip(),
        "bio": request.form.get("bio", "").strip(),
        "skills": [s.strip() for s in request.form.get("skills", "").split(",") if s.strip()],
    }
    try:
        data = data_of(get_api().post("/users/complete-profile", payload))
        store.update_user({
            **(data.get("user") or payload),
            "isProfileComplete": True,
            "profileCompletion": data.get("profileCompletion"),
        })
        flash("Profile completed!", "success")
        return redirect("/user/profile")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Complete profile failed: {e}")
        flash(e.message, "error")
        return render_template("user/complete_profile.html", user=store.user, form=request.form), 400


# ------------------------------------------------------------------
# Employer
# ------------------------------------------------------------------

def _job_from_form(form) -> dict:
    return {
        "title": form.get("title", "").strip(),
        "description": form.get("description", "").strip(),
        "location": form.get("location", "").strip(),
        "jobType": form.get("jobType", "full-time"),
        "experienceLevel": form.get("experienceLevel", "entry"),
        "requirements": [r.strip() for r in form.get("requirements", "").splitlines() if r.strip()],
        "salary": {
            "min": form.get("salaryMin", type=int),
            "max": form.get("salaryMax", type=int),
        },
    }


def _form_from_job(job: dict) -> dict:
    """Flatten a backend job into the job form's field values."""
    salary = job.get("salary") or {}
    requirements = job.get("requirements") or []
    return {
        "title": job.get("title") or "",
        "description": job.get("description") or "",
        "location": job.get("location") or "",
        "jobType": job.get("jobType") or "full-time",
        "experienceLevel": job.get("experienceLevel") or "entry",
        "requirements": "\n".join(requirements) if isinstance(requirements, list) else requirements,
        "salaryMin": salary.get("min") or "",
        "salaryMax": salary.get("max") or "",
    }


def _render_job_form(form, job_id=None, status=200):
    return render_template("employer/job_form.html", form=form, job_id=job_id), status


@dashboard_bp.route("/employer/dashboard")
@with_auth(required_user_type="employer")
def employer_dashboard():
    api = get_api()
    try:
        jobs = data_of(api.get("/employers/jobs", params={"limit": 5})).get("jobs") or []
        applications = data_of(api.get("/employers/applications", params={"limit": 5})).get("applications") or []
        stats = data_of(api.get("/employers/stats")).get("stats") or {}
        return render_template("employer/dashboard.html", jobs=jobs, applications=applications, stats=stats)
    except ApiError as e:
        if e.is_unauthorized:
            raise
        if e.is_forbidden:
            message = "Please verify your email to access dashboard data"
        else:
            logger.error(f"Employer dashboard error: {e}")
            message = "Failed to load dashboard data"
        return render_template("employer/dashboard.html", jobs=[], applications=[], stats={}, error=message)


@dashboard_bp.route("/employer/jobs")
@with_auth(required_user_type="employer")
def employer_jobs():
    try:
        jobs = data_of(get_api().get("/employers/jobs", params=_page_params())).get("jobs") or []
        return render_template("employer/jobs.html", jobs=jobs)
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Failed to load employer jobs: {e}")
        return render_template("employer/jobs.html", jobs=[], error=e.message)


@dashboard_bp.route("/employer/jobs/new", methods=["GET", "POST"])
@with_auth(required_user_type="employer")
@verify_email_required
def employer_create_job():
    """Post a new job."""
    if request.method == "GET":
        return _render_job_form({})

    job = _job_from_form(request.form)
    if not job["title"] or not job["description"]:
        flash("Title and description are required", "error")
        return _render_job_form(request.form, status=400)

    try:
        get_api().post("/jobs", job)
        flash("Job posted successfully!", "success")
        return redirect("/employer/jobs")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Job creation failed: {e}")
        flash(e.message, "error")
        return _render_job_form(request.form, status=400)


@dashboard_bp.route("/employer/jobs/<job_id>/delete", methods=["POST"])
@with_auth(required_user_type="employer")
def employer_delete_job(job_id: str):
    try:
        get_api().delete(f"/jobs/{job_id}")
        flash("Job deleted", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to delete job {job_id}: {e}")
        flash(e.message, "error")
    return redirect("/employer/jobs")


@dashboard_bp.route("/employer/jobs/<job_id>")
@with_auth(required_user_type="employer")
def employer_job_detail(job_id: str):
    """One posted job with its applicants and a status breakdown."""
    api = get_api()
    try:
        job = data_of(api.get(f"/jobs/{job_id}")).get("job")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to load job {job_id}: {e}")
        flash("Failed to load job details", "error")
        return redirect("/employer/dashboard")

    try:
        applications = data_of(api.get(
            "/employers/applications", params={"jobId": job_id, "limit": JOB_APPLICANTS_LIMIT}
        )).get("applications") or []
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to load applicants for job {job_id}: {e}")
        applications = []

    counts = Counter(a.get("status") for a in applications)
    stats = {"total": len(applications), **{status: counts.get(status, 0) for status in APPLICATION_STATUSES}}
    return render_template(
        "employer/job_detail.html",
        job=job or {},
        applications=applications,
        stats=stats,
        statuses=APPLICATION_STATUSES,
    )


@dashboard_bp.route("/employer/jobs/<job_id>/edit", methods=["GET", "POST"])
@with_auth(required_user_type="employer")
@verify_email_required
def employer_edit_job(job_id: str):
    api = get_api()
    if request.method == "GET":
        try:
            job = data_of(api.get(f"/jobs/{job_id}")).get("job") or {}
        except ApiError as e:
            if e.is_unauthorized:
                raise
            logger.warning(f"Failed to load job {job_id} for editing: {e}")
            flash("Failed to load job", "error")
            return redirect("/employer/dashboard")
        return _render_job_form(_form_from_job(job), job_id=job_id)

    job = _job_from_form(request.form)
    if not job["title"] or not job["description"]:
        flash("Title and description are required", "error")
        return _render_job_form(request.form, job_id=job_id, status=400)

    try:
        api.put(f"/jobs/{job_id}", job)
        flash("Job updated successfully!", "success")
        return redirect(f"/employer/jobs/{job_id}")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Job update failed for {job_id}: {e}")
        flash(e.message, "error")
        return _render_job_form(request.form, job_id=job_id, status=400)


@dashboard_bp.route("/employer/applications")
@with_auth(required_user_type="employer")
def employer_applications():
    params = _page_params("jobId", "status")
    try:
        applications = data_of(get_api().get("/employers/applications", params=params)).get("applications") or []
        return render_template(
            "employer/applications.html",
            applications=applications,
            statuses=APPLICATION_STATUSES,
            filters=params,
        )
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Failed to load employer applications: {e}")
        return render_template(
            "employer/applications.html",
            applications=[],
            statuses=APPLICATION_STATUSES,
            filters=params,
            error=e.message,
        )


@dashboard_bp.route("/employer/applications/<application_id>/status", methods=["POST"])
@with_auth(required_user_type="employer")
def employer_update_application(application_id: str):
    status = request.form.get("status")
    back = safe_next("/employer/applications")
    if status not in APPLICATION_STATUSES:
        flash(f"Invalid status: {status}", "error")
        return redirect(back)
    try:
        get_api().put(f"/employers/applications/{application_id}/status", {"status": status})
        flash("Application status updated", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to update application {application_id}: {e}")
        flash(e.message, "error")
    return redirect(back)


@dashboard_bp.route("/employer/complete-profile", methods=["GET", "POST"])
@with_auth(required_user_type="employer")
def employer_complete_profile():
    store = get_session_store()
    if request.method == "GET":
        return render_template("employer/complete_profile.html", user=store.user)

    payload = {
        "companyName": request.form.get("companyName", "").strip(),
        "website": request.form.get("website", "").strip(),
        "industry": request.form.get("industry", "").strip(),
        "companySize": request.form.get("companySize", "").strip(),
        "location": request.form.get("location", "").strip(),
        "description": request.form.get("description", "").strip(),
    }
    if not payload["companyName"]:
        flash("Company name is required", "error")
        return render_template("employer/complete_profile.html", user=store.user, form=request.form), 400

    try:
        data = data_of(get_api().post("/employers/complete-profile", payload))
        store.update_user({
            **(data.get("employer") or payload),
            "isProfileComplete": True,
            "profileCompletion": data.get("profileCompletion"),
        })
        flash("Company profile completed!", "success")
        return redirect("/employer/dashboard")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Employer complete profile failed: {e}")
        flash(e.message, "error")
        return render_template("employer/complete_profile.html", user=store.user, form=request.form), 400


# ------------------------------------------------------------------
# Admin
# ------------------------------------------------------------------

@dashboard_bp.route("/admin/dashboard")
@with_auth(required_user_type="admin")
@verify_email_required
def admin_dashboard():
    api = get_api()
    try:
        stats = data_of(api.get("/admin/dashboard")).get("stats") or {}
        recent_users = data_of(api.get("/admin/users", params={"limit": 5})).get("users") or []
        recent_jobs = data_of(api.get("/admin/jobs", params={"limit": 5})).get("jobs") or []
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Admin dashboard error: {e}")
        return render_template("admin/dashboard.html", stats={}, users=[], jobs=[], error=e.message)

    summary = {
        "totalUsers": stats.get("totalUsers") or 0,
        "totalEmployers": stats.get("totalEmployerProfiles") or 0,
        "totalJobs": stats.get("totalJobs") or 0,
        "totalApplications": stats.get("totalApplications") or 0,
        "pendingJobs": stats.get("pendingJobs") or 0,
        "pendingApplications": stats.get("pendingApplications") or 0,
    }
    return render_template("admin/dashboard.html", stats=summary, users=recent_users, jobs=recent_jobs)


@dashboard_bp.route("/admin/<resource>")
@with_auth(required_user_type="admin")
def admin_list(resource: str):
    """Paginated admin tables for users, employers, jobs and applications."""
    if resource not in ADMIN_RESOURCES:
        return render_template("errors/not_found.html"), 404

    params = _page_params("status", "role")
    try:
        data = data_of(get_api().get(f"/admin/{resource}", params=params))
        return render_template(
            "admin/list.html",
            resource=resource,
            items=data.get(resource) or [],
            pagination=data.get("pagination") or {},
            statuses=APPLICATION_STATUSES,
            filters=params,
        )
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Admin {resource} listing error: {e}")
        return render_template(
            "admin/list.html",
            resource=resource,
            items=[],
            pagination={},
            statuses=APPLICATION_STATUSES,
            filters=params,
            error=e.message,
        )


@dashboard_bp.route("/admin/<resource>/<item_id>/delete", methods=["POST"])
@with_auth(required_user_type="admin")
def admin_delete(resource: str, item_id: str):
    if resource not in ("users", "employers", "jobs"):
        return render_template("errors/not_found.html"), 404
    try:
        get_api().delete(f"/admin/{resource}/{item_id}")
        flash(f"Deleted from {resource}", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Admin delete {resource}/{item_id} failed: {e}")
        flash(e.message, "error")
    return redirect(f"/admin/{resource}")


@dashboard_bp.route("/admin/applications/<application_id>/status", methods=["POST"])
@with_auth(required_user_type="admin")
def admin_update_application(application_id: str):
    status = request.form.get("status")
    if status not in APPLICATION_STATUSES:
        flash(f"Invalid status: {status}", "error")
        return redirect("/admin/applications")
    try:
        get_api().patch(f"/admin/applications/{application_id}/status", {"status": status})
        flash("Application status updated", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to update application {application_id}: {e}")
        flash(e.message, "error")
    return redirect("/admin/applications")


@dashboard_bp.route("/admin/audit-logs")
@with_auth(required_user_type="admin")
def admin_audit_logs():
    """Administrative actions, filterable by action name and target type."""
    params = {"page": request.args.get("page", 1, type=int), "limit": AUDIT_LOGS_PAGE_SIZE}
    filters = {key: request.args[key] for key in ("action", "targetType") if request.args.get(key)}
    params.update(filters)
    try:
        data = data_of(get_api().get("/admin/audit-logs", params=params))
        logs, pagination, error = data.get("logs") or [], data.get("pagination") or {}, None
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Audit log listing error: {e}")
        logs, pagination, error = [], {}, "Failed to load audit logs"
    return render_template(
        "admin/audit_logs.html",
        logs=logs,
        pagination=pagination,
        filters=filters,
        target_types=AUDIT_TARGET_TYPES,
        error=error,
    )


@dashboard_bp.route("/admin/notifications", methods=["GET", "POST"])
@with_auth(required_user_type="admin")
def admin_notifications():
    """List every notification and send announcements."""
    api = get_api()
    if request.method == "POST":
        payload = {
            "title": request.form.get("title", "").strip(),
            "message": request.form.get("message", "").strip(),
            "type": request.form.get("type") or "system_announcement",
            "priority": request.form.get("priority") or "normal",
        }
        if request.form.get("recipient"):
            payload["recipient"] = request.form["recipient"].strip()
        if request.form.get("recipientModel") in ("User", "Employer"):
            payload["recipientModel"] = request.form["recipientModel"]

        if not payload["title"] or not payload["message"]:
            flash("Title and message are required", "error")
        elif payload["priority"] not in NOTIFICATION_PRIORITIES:
            flash(f"Invalid priority: {payload['priority']}", "error")
        else:
            try:
                api.post("/admin/notifications", payload)
                flash("Notification sent", "success")
            except ApiError as e:
                if e.is_unauthorized:
                    raise
                logger.warning(f"Sending notification failed: {e}")
                flash(e.message, "error")
        return redirect("/admin/notifications")

    try:
        notifications = data_of(api.get("/admin/notifications")).get("notifications") or []
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.error(f"Admin notifications listing error: {e}")
        notifications = []
    return render_template(
        "admin/notifications.html",
        notifications=notifications,
        priorities=NOTIFICATION_PRIORITIES,
    )


@dashboard_bp.route("/admin/notifications/<notification_id>/delete", methods=["POST"])
@with_auth(required_user_type="admin")
def admin_delete_notification(notification_id: str):
    try:
        get_api().delete(f"/admin/notifications/{notification_id}")
        flash("Notification deleted", "success")
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Failed to delete notification {notification_id}: {e}")
        flash(e.message, "error")
    return redirect("/admin/notifications")
