#!/usr/bin/env python3
"""
ApplyOps - Main Entry Point

Uses the application factory pattern via applyops.create_app().

Usage:
    python run.py

Environment Variables:
    FLASK_ENV: development (default), production
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (optional)
    PORT: HTTP port (default 5000)
"""

import os
import sys
from pathlib import Path

APP_DIR = Path(__file__).parent

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv(APP_DIR / ".env")

# Initialize logging first
from applyops.logging_config import setup_logging, get_logger

flask_env = os.environ.get("FLASK_ENV", "development")
log_level = os.environ.get("LOG_LEVEL")
json_logs = flask_env == "production"

setup_logging(level=log_level, json_logs=json_logs)
logger = get_logger(__name__)


def main():
    """Main entry point for ApplyOps."""
    from applyops import create_app

    try:
        app = create_app()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    config = app.config["APPLYOPS_CONFIG"]
    port = int(os.environ.get("PORT", 5000))

    logger.info("=" * 60)
    logger.info("  ApplyOps - Starting Up")
    logger.info("=" * 60)
    logger.info(f"  Environment: {flask_env}")
    logger.info(f"  Database: {config.database_path}")
    logger.info(f"  AI provider: {config.ai_provider} ({config.ai_model or 'default model'})")
    logger.info(f"  Calendar timezone: {config.calendar_timezone}")
    if not config.google_client_id:
        logger.warning("  GOOGLE_CLIENT_ID not set - Gmail sync cannot be connected")
    if not config.secret_key:
        logger.warning("  FLASK_SECRET_KEY not set - Google connect links expire on restart")
    logger.info(f"  Health Check: http://localhost:{port}/health")
    logger.info("=" * 60)

    debug_mode = flask_env != "production"
    app.run(debug=debug_mode, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
