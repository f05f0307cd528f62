"""
Applications Blueprint - CRUD for tracked applications and the Gmail sync

Routes:
- GET    /api/applications
- GET    /api/applications/<id>
- POST   /api/applications
- PATCH  /api/applications/<id>
- DELETE /api/applications/<id>
- POST   /api/applications/sync
"""

import logging
import math

from flask import Blueprint, jsonify

from applyops.errors import NotFoundError, ValidationError
from applyops.models import Application, ApplicationStatus

from .helpers import (
    current_user_id,
    get_services,
    json_body,
    optional_datetime,
    optional_string,
    positive_int_arg,
    required_string,
)

logger = logging.getLogger(__name__)

applications_bp = Blueprint("applications", __name__, url_prefix="/api/applications")

DEFAULT_PAGE_SIZE = 20

# JSON key -> column, for plain text fields a user may set
TEXT_FIELDS = {
    "platform": "platform",
    "notes": "notes",
    "salary": "salary",
    "location": "location",
    "url": "url",
}


def _parse_status(value) -> ApplicationStatus:
    try:
        return ApplicationStatus(str(value).upper())
    except ValueError:
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise ValidationError(f"status must be one of: {allowed}")


def _get_owned(store, application_id: str, user_id: str) -> Application:
    application = store.get_application(application_id, user_id=user_id)
    if application is None:
        raise NotFoundError("Application not found")
    return application


@applications_bp.route("", methods=["GET"])
def list_applications():
    user_id = current_user_id()
    store = get_services().store

    page = positive_int_arg("page", 1)
    limit = positive_int_arg("limit", DEFAULT_PAGE_SIZE)

    applications = store.list_applications(user_id, limit=limit, offset=(page - 1) * limit)
    total = store.count_applications(user_id)

    return jsonify(
        {
            "success": True,
            "data": [a.to_dict() for a in applications],
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        }
    )


@applications_bp.route("/<application_id>", methods=["GET"])
def get_application(application_id):
    user_id = current_user_id()
    application = _get_owned(get_services().store, application_id, user_id)
    return jsonify({"success": True, "data": application.to_dict()})


@applications_bp.route("", methods=["POST"])
def create_application():
    user_id = current_user_id()
    data = json_body()

    application = Application(
        user_id=user_id,
        company=required_string(data, "company"),
        role=required_string(data, "role"),
        status=_parse_status(data["status"]) if data.get("status") else ApplicationStatus.APPLIED,
        interview_at=optional_datetime(data, "interviewAt"),
        **{column: optional_string(data, key) for key, column in TEXT_FIELDS.items()},
    )
    application = get_services().store.create_application(application)

    return jsonify({"success": True, "data": application.to_dict()}), 201


@applications_bp.route("/<application_id>", methods=["PATCH"])
def update_application(application_id):
    """
    Edit an application.

    Setting interviewAt moves the tracked calendar event (or creates one)
    and switches the status to INTERVIEWING unless the application is
    already OFFERED or REJECTED. Calendar problems never block the edit.
    """
    user_id = current_user_id()
    data = json_body()
    services = get_services()
    existing = _get_owned(services.store, application_id, user_id)

    changes = {}
    for key in ("company", "role"):
        if key in data:
            changes[key] = required_string(data, key)
    for key, column in TEXT_FIELDS.items():
        if key in data:
            changes[column] = optional_string(data, key)
    if data.get("status"):
        changes["status"] = _parse_status(data["status"])

    interview_at = optional_datetime(data, "interviewAt")
    if interview_at is not None:
        changes["interview_at"] = interview_at
        if existing.status not in (ApplicationStatus.OFFERED, ApplicationStatus.REJECTED):
            changes["status"] = ApplicationStatus.INTERVIEWING

        target = Application(
            user_id=user_id,
            company=changes.get("company", existing.company),
            role=changes.get("role", existing.role),
        )
        if existing.calendar_event_id:
            services.calendar.update_interview_event(
                user_id, existing.calendar_event_id, target, interview_at
            )
        else:
            event_id = services.calendar.ensure_interview_event(user_id, target, interview_at)
            if event_id:
                changes["calendar_event_id"] = event_id

    if not changes:
        return jsonify({"success": True, "data": existing.to_dict()})

    application = services.store.update_application(
        application_id, changes, expected_version=existing.version
    )
    return jsonify({"success": True, "data": application.to_dict()})


@applications_bp.route("/<application_id>", methods=["DELETE"])
def delete_application(application_id):
    user_id = current_user_id()
    services = get_services()
    existing = _get_owned(services.store, application_id, user_id)

    services.store.delete_application(application_id)
    if existing.calendar_event_id:
        services.calendar.delete_interview_event(user_id, existing.calendar_event_id)

    return jsonify({"success": True, "message": "Application deleted"})


@applications_bp.route("/sync", methods=["POST"])
def sync_gmail():
    """Run a Gmail sync for the current user."""
    user_id = current_user_id()
    result = get_services().scanner.sync(user_id)

    return jsonify(
        {
            "success": True,
            "count": result.count,
            "message": result.message,
            "summary": result.to_dict(),
        }
    )
