"""
Tests for Gmail message decoding and the Gmail client wrapper.
"""

import base64
from datetime import date, datetime, timezone
from unittest.mock import Mock

import pytest
from googleapiclient.errors import HttpError

from applyops.email import GmailClient, get_email_body, html_to_text, parse_message
from applyops.email.client import decode_body_data


def encode(text: str, strip_padding: bool = True) -> str:
    data = base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")
    return data.rstrip("=") if strip_padding else data


def part(mime_type: str, text: str) -> dict:
    return {"mimeType": mime_type, "body": {"data": encode(text)}}


class TestBodyExtraction:
    def test_decode_without_padding(self):
        assert decode_body_data(encode("hello?")) == "hello?"

    def test_single_part_plain(self):
        payload = part("text/plain", "Thanks for applying")
        assert get_email_body(payload) == "Thanks for applying"

    def test_single_part_html_is_converted(self):
        payload = part("text/html", "<p>Interview <b>Monday</b></p>")
        assert get_email_body(payload) == "Interview Monday"

    def test_plain_preferred_over_html(self):
        payload = {
            "mimeType": "multipart/alternative",
            "body": {},
            "parts": [part("text/html", "<p>html version</p>"), part("text/plain", "plain version")],
        }
        assert get_email_body(payload) == "plain version"

    def test_nested_parts(self):
        payload = {
            "mimeType": "multipart/mixed",
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [part("text/html", "<div>Offer letter attached</div>")],
                },
                {"mimeType": "application/pdf", "body": {"attachmentId": "a1"}},
            ],
        }
        assert get_email_body(payload) == "Offer letter attached"

    def test_empty_payload(self):
        assert get_email_body({}) == ""

    def test_html_to_text_drops_style_and_script(self):
        html = "<style>p {color: red}</style><script>alert(1)</script><p>We are moving&nbsp;forward</p>"
        assert html_to_text(html) == "We are moving forward"


class TestParseMessage:
    def test_headers_and_date(self):
        message = {
            "id": "m1",
            "internalDate": "1717243200000",
            "payload": {
                "mimeType": "text/plain",
                "headers": [
                    {"name": "Subject", "value": "Interview invitation"},
                    {"name": "From", "value": "Acme <jobs@acme.com>"},
                    {"name": "Date", "value": "Mon, 03 Jun 2024 09:30:00 +0000"},
                ],
                "body": {"data": encode("See you Monday")},
            },
        }

        detail = parse_message(message)

        assert detail.message_id == "m1"
        assert detail.subject == "Interview invitation"
        assert detail.sender == "Acme <jobs@acme.com>"
        assert detail.received_at == datetime(2024, 6, 3, 9, 30, tzinfo=timezone.utc)
        assert detail.body_text == "See you Monday"

    def test_internal_date_fallback(self):
        message = {
            "id": "m2",
            "internalDate": "1717243200000",
            "payload": {"headers": [{"name": "Date", "value": "not a date"}]},
        }
        assert parse_message(message).received_at == datetime(2024, 6, 1, 12, tzinfo=timezone.utc)


class TestGmailClient:
    def test_list_appends_date_clause(self):
        service = Mock()
        messages = service.users.return_value.messages.return_value
        messages.list.return_value.execute.return_value = {"messages": [{"id": "a"}, {"id": "b"}]}

        ids = GmailClient(service).list_candidate_messages(date(2024, 3, 5), "interview", 20)

        assert ids == ["a", "b"]
        messages.list.assert_called_once_with(userId="me", q="interview after:2024/03/05", maxResults=20)

    def test_list_without_results(self):
        service = Mock()
        service.users.return_value.messages.return_value.list.return_value.execute.return_value = {}
        assert GmailClient(service).list_candidate_messages(date(2024, 3, 5), "q") == []

    def test_get_message_detail(self):
        service = Mock()
        messages = service.users.return_value.messages.return_value
        messages.get.return_value.execute.return_value = {
            "id": "m1",
            "internalDate": "1717243200000",
            "payload": part("text/plain", "body"),
        }

        detail = GmailClient(service).get_message_detail("m1")

        assert detail.body_text == "body"
        messages.get.assert_called_once_with(userId="me", id="m1", format="full")

    def test_permanent_errors_are_not_retried(self):
        service = Mock()
        execute = service.users.return_value.messages.return_value.get.return_value.execute
        execute.side_effect = HttpError(Mock(status=404, reason="Not Found"), b"")

        with pytest.raises(HttpError):
            GmailClient(service).get_message_detail("gone")

        assert execute.call_count == 1
