"""
Routes Package - Flask Blueprints for ApplyOps

Blueprint structure:
- main_bp: Health check
- applications_bp: Application CRUD and Gmail sync (/api/applications)
- google_bp: Google consent flow (/api/google)
- ai_bp: Resume scoring (/api/resumes)
- cover_letters_bp: Stored cover letters (/api/cover-letters)
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from applyops.errors import ApplyOpsError

logger = logging.getLogger(__name__)


def register_all_blueprints(app):
    """
    Register all Flask blueprints with the application.

    Args:
        app: Flask application instance
    """
    from .main import main_bp
    from .applications import applications_bp
    from .oauth import google_bp
    from .ai import ai_bp
    from .cover_letters import cover_letters_bp

    for blueprint in (main_bp, applications_bp, google_bp, ai_bp, cover_letters_bp):
        app.register_blueprint(blueprint)
        logger.debug(f"Registered blueprint {blueprint.name}")


def register_error_handlers(app):
    """Render errors as {success: false, message}."""

    @app.errorhandler(ApplyOpsError)
    def handle_applyops_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        return jsonify({"success": False, "message": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"Unexpected error: {error}")
        return jsonify({"success": False, "message": "Internal server error"}), 500


__all__ = ["register_all_blueprints", "register_error_handlers"]
