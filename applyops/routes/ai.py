"""
AI Blueprint - resume scoring

Thin wrapper over applyops.ai.analyzer.score_resume.
"""

import logging

from flask import Blueprint, jsonify

from applyops.ai import score_resume
from applyops.errors import ValidationError

from .helpers import current_user_id, get_services, json_body, required_string

logger = logging.getLogger(__name__)

ai_bp = Blueprint("ai", __name__, url_prefix="/api")

MIN_RESUME_CHARS = 50


@ai_bp.route("/resumes/analyze", methods=["POST"])
def analyze_resume():
    current_user_id()
    data = json_body()
    resume_text = required_string(data, "resumeText")
    job_description = required_string(data, "jobDescription")

    if len(resume_text) < MIN_RESUME_CHARS:
        raise ValidationError("Resume content is empty or too short")

    analysis = score_resume(get_services().ai_provider, resume_text, job_description)
    return jsonify({"success": True, "data": analysis})
