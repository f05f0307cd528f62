"""
ApplyOps - Application Factory

Job-application tracker with Gmail ingestion: job emails are classified
with an AI provider and reconciled into a per-user set of applications,
with interviews scheduled in Google Calendar.
"""

import logging
import os

from flask import Flask
from flask_cors import CORS

from applyops.config import Config, get_config

logger = logging.getLogger(__name__)

__version__ = "1.0.0"


def create_app(config_path=None, config: Config = None, services=None):
    """
    Application factory for creating Flask app instances.

    Args:
        config_path: Optional path to config.yaml file
        config: Pre-built Config (takes precedence over config_path)
        services: Pre-built Services container (tests)

    Returns:
        Configured Flask application instance
    """
    if config is None:
        try:
            config = get_config(config_path)
        except FileNotFoundError as e:
            logger.error(f"Configuration Error: {e}")
            raise

    if services is None:
        from applyops.services import Services

        services = Services(config)

    app = Flask(__name__)
    CORS(app, supports_credentials=True)

    secret_key = config.secret_key
    if not secret_key:
        logger.warning("FLASK_SECRET_KEY not set, generating a random key for this process")
        secret_key = os.urandom(24).hex()
    app.secret_key = secret_key

    app.config["APPLYOPS_CONFIG"] = config
    app.config["APPLYOPS_SERVICES"] = services

    register_blueprints(app)

    return app


def register_blueprints(app):
    """Register all Flask blueprints and JSON error handlers."""
    from applyops.routes import register_all_blueprints, register_error_handlers

    register_all_blueprints(app)
    register_error_handlers(app)
