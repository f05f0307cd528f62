"""
Google Blueprint - Gmail/Calendar consent flow

Routes:
- GET    /api/google/auth-url     consent URL for the current user
- GET    /api/google/callback     OAuth redirect target; stores the user's token
- GET    /api/google/status       whether Gmail / Calendar are connected
- DELETE /api/google/connection   forget the stored token (disconnect Gmail)
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from applyops.errors import NotFoundError, ValidationError
from applyops.google import (
    CALENDAR_SCOPE,
    GMAIL_SCOPE,
    exchange_code,
    get_authorization_url,
    read_state,
    sign_state,
)

from .helpers import current_user_id, get_services

logger = logging.getLogger(__name__)

google_bp = Blueprint("google", __name__, url_prefix="/api/google")


@google_bp.route("/auth-url", methods=["GET"])
def auth_url():
    user_id = current_user_id()
    flow = get_services().oauth_flow()
    state = sign_state(current_app.secret_key, user_id)
    return jsonify({"success": True, "url": get_authorization_url(flow, state)})


@google_bp.route("/callback", methods=["GET"])
def oauth_callback():
    if request.args.get("error"):
        raise ValidationError(f"Google authorization failed: {request.args['error']}")

    code = request.args.get("code")
    state = request.args.get("state")
    if not code or not state:
        raise ValidationError("Missing code or state")

    try:
        user_id = read_state(current_app.secret_key, state)
    except ValueError as e:
        logger.warning(f"Rejected Google callback: {e}")
        raise ValidationError(str(e))

    services = get_services()
    exchange_code(services.oauth_flow(), services.store, user_id, code)

    return jsonify({"success": True, "message": "Google account connected"})


@google_bp.route("/status", methods=["GET"])
def connection_status():
    user_id = current_user_id()
    token = get_services().store.get_google_token(user_id)

    if token is None:
        data = {"gmailConnected": False, "calendarConnected": False, "connectedAt": None}
    else:
        # a token without a stored scope list is accepted for every scope
        scopes = (token.get("scopes") or "").split()
        data = {
            "gmailConnected": not scopes or GMAIL_SCOPE in scopes,
            "calendarConnected": not scopes or CALENDAR_SCOPE in scopes,
            "connectedAt": token.get("updated_at"),
        }

    return jsonify({"success": True, "data": data})


@google_bp.route("/connection", methods=["DELETE"])
def disconnect():
    user_id = current_user_id()
    if not get_services().store.delete_google_token(user_id):
        raise NotFoundError("Gmail not connected")

    logger.info(f"Removed Google token for user {user_id}")
    return jsonify({"success": True, "message": "Gmail disconnected"})
