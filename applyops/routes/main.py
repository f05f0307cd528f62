"""
Main Routes Blueprint - health check
"""

import logging

from flask import Blueprint, jsonify

from applyops.models import format_datetime, utcnow

logger = logging.getLogger(__name__)

main_bp = Blueprint("main", __name__)


@main_bp.route("/health")
def health():
    return jsonify({"status": "ok", "timestamp": format_datetime(utcnow())})
