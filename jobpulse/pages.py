"""
Public Pages Blueprint.

Home page with featured jobs, the companies directory, plus the static
marketing pages (about, contact, terms, privacy, help, faq). None of these
need a session.
"""

import logging

from flask import Blueprint, flash, redirect, render_template, request

from .api_client import ApiError, data_of, get_api

logger = logging.getLogger(__name__)

pages_bp = Blueprint("pages", __name__)

FEATURED_JOBS_LIMIT = 6
COMPANIES_PAGE_SIZE = 12

STATIC_PAGES = ("about", "terms", "privacy", "help", "faq")


@pages_bp.route("/")
def home():
    """Landing page. A backend outage only hides the featured jobs."""
    try:
        jobs = data_of(get_api().get("/jobs", params={"limit": FEATURED_JOBS_LIMIT})).get("jobs") or []
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Could not load featured jobs: {e}")
        jobs = []
    return render_template("pages/home.html", jobs=jobs)


@pages_bp.route("/companies")
def companies():
    """Browse employers, with search, location and industry filters."""
    filters = {
        key: request.args[key].strip()
        for key in ("search", "location", "industry")
        if request.args.get(key, "").strip()
    }
    page = max(request.args.get("page", 1, type=int), 1)
    try:
        data = data_of(get_api().get("/employers", params={"page": page, "limit": COMPANIES_PAGE_SIZE, **filters}))
        employers, error = data.get("employers") or [], None
    except ApiError as e:
        if e.is_unauthorized:
            raise
        logger.warning(f"Could not load companies: {e}")
        data, employers, error = {}, [], "Failed to load companies"
    return render_template(
        "pages/companies.html",
        companies=employers,
        total=data.get("total") or len(employers),
        page=page,
        total_pages=data.get("totalPages") or 1,
        filters=filters,
        error=error,
    )


@pages_bp.route("/contact", methods=["GET", "POST"])
def contact():
    if request.method == "GET":
        return render_template("pages/contact.html", form={})

    form = {
        "name": request.form.get("name", "").strip(),
        "email": request.form.get("email", "").strip(),
        "message": request.form.get("message", "").strip(),
    }
    if not all(form.values()):
        flash("Please fill in all fields", "error")
        return render_template("pages/contact.html", form=form), 400

    logger.info(f"Contact message received from {form['email']}")
    flash("Thanks for reaching out! We'll get back to you soon.", "success")
    return redirect("/contact")


def _static_page(name: str):
    def view():
        return render_template(f"pages/{name}.html")
    view.__name__ = name
    return view


for _name in STATIC_PAGES:
    pages_bp.add_url_rule(f"/{_name}", view_func=_static_page(_name))
