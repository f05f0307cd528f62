"""
Cover Letters Blueprint - generate, keep and edit cover letters

Routes:
- GET    /api/cover-letters            the user's letters, newest first
- POST   /api/cover-letters/generate   draft a letter with the AI provider and store it
- PATCH  /api/cover-letters/<id>       replace a letter's text
- DELETE /api/cover-letters/<id>
"""

import logging

from flask import Blueprint, jsonify

from applyops.ai import generate_cover_letter
from applyops.errors import NotFoundError, ValidationError
from applyops.models import COVER_LETTER_TONES, CoverLetter

from .helpers import current_user_id, get_services, json_body, optional_string, required_string

logger = logging.getLogger(__name__)

cover_letters_bp = Blueprint("cover_letters", __name__, url_prefix="/api/cover-letters")

DEFAULT_TONE = "FORMAL"
DEFAULT_USER_NAME = "Candidate"


@cover_letters_bp.route("", methods=["GET"])
def list_cover_letters():
    user_id = current_user_id()
    letters = get_services().store.list_cover_letters(user_id)
    return jsonify({"success": True, "data": [letter.to_dict() for letter in letters]})


@cover_letters_bp.route("/generate", methods=["POST"])
def create_cover_letter():
    user_id = current_user_id()
    data = json_body()
    company = required_string(data, "company")
    role = required_string(data, "role")

    tone = (optional_string(data, "tone") or DEFAULT_TONE).upper()
    if tone not in COVER_LETTER_TONES:
        raise ValidationError(f"tone must be one of {', '.join(COVER_LETTER_TONES)}")

    services = get_services()
    content = generate_cover_letter(
        services.ai_provider,
        company=company,
        role=role,
        job_description=optional_string(data, "jobDescription") or "",
        tone=tone,
        user_name=optional_string(data, "userName") or DEFAULT_USER_NAME,
        resume_text=optional_string(data, "resumeText"),
    )

    letter = services.store.create_cover_letter(
        CoverLetter(user_id=user_id, company=company, role=role, tone=tone, content=content)
    )
    logger.info(f"Stored cover letter {letter.id} for {company}")
    return jsonify({"success": True, "data": letter.to_dict()}), 201


@cover_letters_bp.route("/<letter_id>", methods=["PATCH"])
def update_cover_letter(letter_id):
    user_id = current_user_id()
    content = required_string(json_body(), "content")

    letter = get_services().store.update_cover_letter_content(letter_id, user_id, content)
    return jsonify({"success": True, "data": letter.to_dict()})


@cover_letters_bp.route("/<letter_id>", methods=["DELETE"])
def delete_cover_letter(letter_id):
    user_id = current_user_id()
    if not get_services().store.delete_cover_letter(letter_id, user_id):
        raise NotFoundError("Cover letter not found")

    return jsonify({"success": True, "message": "Cover letter deleted"})
