"""
Gmail Client - read-only access to a user's mailbox

Wraps a Gmail API v1 service built from the user's stored credentials and
turns raw messages into MessageDetail objects for the scanner.
"""

import base64
import logging
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional

from bs4 import BeautifulSoup
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from applyops.models import MessageDetail
from applyops.resilience import retry_with_backoff

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = (429, 500, 502, 503, 504)


def _is_transient(error: Exception) -> bool:
    status = getattr(getattr(error, "resp", None), "status", None)
    try:
        return int(status) in TRANSIENT_STATUS_CODES
    except (TypeError, ValueError):
        return False


_gmail_retry = retry_with_backoff(
    max_retries=2,
    base_delay=1.0,
    retryable_exceptions=(HttpError,),
    should_retry=_is_transient,
)


def decode_body_data(data: str) -> str:
    """Decode Gmail's URL-safe base64 body data (padding optional)."""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def html_to_text(html: str) -> str:
    """Convert HTML email body to plain text for classification."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["style", "script"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split())


def _find_part(payload: dict, mime_type: str) -> Optional[str]:
    """Depth-first search for the first part of ``mime_type`` carrying data."""
    if payload.get("mimeType") == mime_type and payload.get("body", {}).get("data"):
        return decode_body_data(payload["body"]["data"])
    for part in payload.get("parts", []) or []:
        found = _find_part(part, mime_type)
        if found is not None:
            return found
    return None


def get_email_body(payload: dict) -> str:
    """
    Extract a plain-text body from a Gmail message payload.

    text/plain is preferred over text/html; HTML is reduced to text. A
    single-part message uses its own body data whatever its type.
    """
    if not payload:
        return ""

    if not payload.get("parts") and payload.get("body", {}).get("data"):
        body = decode_body_data(payload["body"]["data"])
        if payload.get("mimeType") == "text/html":
            return html_to_text(body)
        return body

    plain = _find_part(payload, "text/plain")
    if plain is not None:
        return plain

    html = _find_part(payload, "text/html")
    return html_to_text(html) if html is not None else ""


def get_header(message: dict, name: str) -> str:
    for header in message.get("payload", {}).get("headers", []) or []:
        if header.get("name", "").lower() == name.lower():
            return header.get("value", "")
    return ""


def _received_at(message: dict) -> datetime:
    raw_date = get_header(message, "Date")
    if raw_date:
        try:
            received = parsedate_to_datetime(raw_date)
            if received.tzinfo is None:
                received = received.replace(tzinfo=timezone.utc)
            return received
        except (TypeError, ValueError):
            logger.debug(f"Unparseable Date header {raw_date!r}, using internalDate")

    internal = message.get("internalDate")
    if internal:
        return datetime.fromtimestamp(int(internal) / 1000, tz=timezone.utc)
    return datetime.now(timezone.utc)


def parse_message(message: dict) -> MessageDetail:
    """Build a MessageDetail from a ``format=full`` Gmail message."""
    return MessageDetail(
        message_id=message["id"],
        subject=get_header(message, "Subject"),
        sender=get_header(message, "From"),
        received_at=_received_at(message),
        body_text=get_email_body(message.get("payload") or {}),
    )


class GmailClient:
    """
    Gmail API client for one user.

    Handles:
    - Listing candidate messages for a search query
    - Fetching and decoding a single message
    """

    def __init__(self, service):
        """
        Args:
            service: googleapiclient Gmail v1 Resource
        """
        self._service = service

    @classmethod
    def from_credentials(cls, credentials) -> "GmailClient":
        return cls(build("gmail", "v1", credentials=credentials, cache_discovery=False))

    @_gmail_retry
    def _list(self, query: str, max_results: int) -> dict:
        return (
            self._service.users()
            .messages()
            .list(userId="me", q=query, maxResults=max_results)
            .execute()
        )

    @_gmail_retry
    def _get(self, message_id: str) -> dict:
        return (
            self._service.users()
            .messages()
            .get(userId="me", id=message_id, format="full")
            .execute()
        )

    def list_candidate_messages(self, since: date, query: str, max_results: int = 20) -> List[str]:
        """
        Search for candidate message ids.

        Args:
            since: Only messages after this date
            query: Gmail search query (without the date clause)
            max_results: Maximum number of ids to return

        Returns:
            Message ids, newest first as Gmail orders them
        """
        full_query = f"{query} after:{since.strftime('%Y/%m/%d')}"
        results = self._list(full_query, max_results)
        ids = [m["id"] for m in results.get("messages", []) if m.get("id")]
        logger.info(f"Gmail query returned {len(ids)} messages")
        return ids

    def get_message_detail(self, message_id: str) -> MessageDetail:
        return parse_message(self._get(message_id))
