"""
Google Auth - per-user OAuth2 credentials

Tokens obtained through the consent flow are stored in the google_tokens
table. GoogleCredentialProvider turns a stored token into a
google.oauth2 Credentials object, refreshing it when expired and writing
the refreshed token back.
"""

import logging
from datetime import timezone
from typing import Callable, Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from applyops.models import parse_datetime

logger = logging.getLogger(__name__)

GMAIL_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar.events"

OAUTH_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
    GMAIL_SCOPE,
    CALENDAR_SCOPE,
]

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

STATE_SALT = "applyops-google-oauth-state"
STATE_MAX_AGE = 600


class GoogleCredentialProvider:
    """Loads, refreshes and persists a user's Google credentials."""

    def __init__(
        self,
        store,
        client_id: Optional[str],
        client_secret: Optional[str],
        request_factory: Callable = Request,
    ):
        """
        Args:
            store: RecordStore holding google_tokens
            client_id: OAuth client id (needed to refresh)
            client_secret: OAuth client secret (needed to refresh)
            request_factory: Transport request factory (tests)
        """
        self.store = store
        self.client_id = client_id
        self.client_secret = client_secret
        self.request_factory = request_factory

    def _build_credentials(self, token: dict) -> Credentials:
        expiry = parse_datetime(token.get("expiry"))
        scopes = token.get("scopes")
        return Credentials(
            token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            token_uri=TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=scopes.split() if scopes else None,
            # google-auth compares expiry against a naive UTC clock
            expiry=expiry.astimezone(timezone.utc).replace(tzinfo=None) if expiry else None,
        )

    def get_valid_credentials(self, user_id: str, scope: Optional[str] = None) -> Optional[Credentials]:
        """
        Return usable credentials for a user, or None.

        None means the user never connected Google, the stored grant does
        not include ``scope``, or the token could not be refreshed.
        """
        token = self.store.get_google_token(user_id)
        if not token:
            logger.info(f"No Google token stored for user {user_id}")
            return None

        scopes = (token.get("scopes") or "").split()
        if scope and scopes and scope not in scopes:
            logger.warning(f"Google grant for user {user_id} lacks scope {scope}")
            return None

        creds = self._build_credentials(token)
        if creds.valid:
            return creds

        if not creds.refresh_token:
            logger.warning(f"Google token for user {user_id} expired and cannot be refreshed")
            return None

        try:
            creds.refresh(self.request_factory())
        except RefreshError as e:
            logger.error(f"Failed to refresh Google credentials for user {user_id}: {e}")
            return None

        self.store.save_google_token(
            user_id,
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry=parse_datetime(creds.expiry),
        )
        logger.info(f"Refreshed Google token for user {user_id}")
        return creds


def build_oauth_flow(client_id: str, client_secret: str, redirect_uri: str) -> Flow:
    """Create the web-server OAuth flow for the Gmail + Calendar consent screen."""
    if not client_id or not client_secret:
        raise ValueError("Google OAuth client is not configured (GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET)")

    client_config = {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }
    # The callback runs in a fresh request, so there is nowhere to keep a PKCE verifier
    return Flow.from_client_config(
        client_config,
        scopes=OAUTH_SCOPES,
        redirect_uri=redirect_uri,
        autogenerate_code_verifier=False,
    )


def sign_state(secret_key: str, user_id: str) -> str:
    """Sign the user id so the callback can trust it."""
    return URLSafeTimedSerializer(secret_key, salt=STATE_SALT).dumps(user_id)


def read_state(secret_key: str, state: str, max_age: int = STATE_MAX_AGE) -> str:
    """
    Return the user id carried by a signed ``state``.

    Raises:
        ValueError: If the signature is invalid or older than max_age seconds
    """
    serializer = URLSafeTimedSerializer(secret_key, salt=STATE_SALT)
    try:
        return serializer.loads(state, max_age=max_age)
    except SignatureExpired:
        raise ValueError("Google authorization link expired")
    except BadSignature:
        raise ValueError("Invalid OAuth state")


def get_authorization_url(flow: Flow, state: str) -> str:
    """
    Build the consent URL. ``state`` comes back unchanged on the callback.

    ``prompt=consent`` makes Google issue a refresh token every time.
    """
    url, _ = flow.authorization_url(access_type="offline", prompt="consent", state=state)
    return url


def exchange_code(flow: Flow, store, user_id: str, code: str) -> Credentials:
    """Exchange an authorization code for tokens and store them for the user."""
    flow.fetch_token(code=code)
    creds = flow.credentials

    store.ensure_user(user_id)
    store.save_google_token(
        user_id,
        access_token=creds.token,
        refresh_token=creds.refresh_token,
        expiry=parse_datetime(creds.expiry),
        scopes=list(creds.scopes or OAUTH_SCOPES),
    )
    logger.info(f"Stored Google token for user {user_id}")
    return creds
