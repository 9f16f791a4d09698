"""Tests for Gmail message parsing."""

from __future__ import annotations

import base64

from zeno.gmail.models import (
    THREAD_MESSAGE_BODY_CHARS,
    Email,
    ThreadMessage,
    extract_body,
    extract_email_address,
)


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


def _message(headers: dict[str, str], body: str = "Hello", **extra) -> dict:
    data = {
        "id": "msg_1",
        "threadId": "thread_1",
        "snippet": "Hello",
        "payload": {
            "headers": [{"name": k, "value": v} for k, v in headers.items()],
            "body": {"data": _b64(body)},
        },
    }
    data.update(extra)
    return data


class TestExtractEmailAddress:
    def test_angle_brackets(self):
        assert extract_email_address("Alice Smith <Alice@Example.com>") == "alice@example.com"

    def test_bare_address(self):
        assert extract_email_address("  Bob@Example.com ") == "bob@example.com"

    def test_empty(self):
        assert extract_email_address("") == ""


class TestExtractBody:
    def test_top_level_body(self):
        assert extract_body({"body": {"data": _b64("plain")}}) == "plain"

    def test_prefers_plain_part(self):
        payload = {
            "body": {},
            "parts": [
                {"mimeType": "text/html", "body": {"data": _b64("<p>html</p>")}},
                {"mimeType": "text/plain", "body": {"data": _b64("plain")}},
            ],
        }
        assert extract_body(payload) == "plain"

    def test_html_fallback(self):
        payload = {"parts": [{"mimeType": "text/html", "body": {"data": _b64("<b>x</b>")}}]}
        assert extract_body(payload) == "<b>x</b>"

    def test_nothing(self):
        assert extract_body({}) == ""


class TestEmailFromApi:
    def test_parses_headers(self):
        email = Email.from_api(
            _message(
                {
                    "From": "Alice <alice@example.com>",
                    "To": "user@example.com",
                    "Cc": "carol@example.com",
                    "Subject": "Re: Budget",
                    "Date": "Mon, 3 Jun 2024 10:00:00 +0000",
                    "References": "<a@mail>",
                    "In-Reply-To": "<a@mail>",
                    "Message-ID": "<b@mail>",
                },
                body="Body text",
            )
        )
        assert email.id == "msg_1"
        assert email.thread_id == "thread_1"
        assert email.from_email == "alice@example.com"
        assert email.subject == "Re: Budget"
        assert email.cc == "carol@example.com"
        assert email.body == "Body text"
        assert email.body_preview == "Hello"
        assert email.references == "<a@mail>"
        assert email.in_reply_to == "<a@mail>"
        assert email.message_id == "<b@mail>"

    def test_header_names_case_insensitive(self):
        email = Email.from_api(_message({"from": "a@x.com", "SUBJECT": "Hi"}))
        assert email.from_email == "a@x.com"
        assert email.subject == "Hi"

    def test_missing_optional_headers(self):
        email = Email.from_api(_message({"From": "a@x.com"}))
        assert email.cc is None
        assert email.references is None
        assert email.in_reply_to is None


class TestThreadMessage:
    def test_from_user_flag(self):
        msg = ThreadMessage.from_api(
            _message({"From": "Me <User@Example.com>"}), "user@example.com"
        )
        assert msg.is_from_user is True

    def test_body_capped(self):
        msg = ThreadMessage.from_api(_message({"From": "a@x.com"}, body="w" * 5000), "u@x.com")
        assert len(msg.body) == THREAD_MESSAGE_BODY_CHARS

    def test_timestamp(self):
        early = ThreadMessage(from_="a", from_email="a", date="Mon, 3 Jun 2024 10:00:00 +0000")
        late = ThreadMessage(from_="a", from_email="a", date="Tue, 4 Jun 2024 10:00:00 +0000")
        assert early.timestamp < late.timestamp

    def test_bad_date_sorts_first(self):
        assert ThreadMessage(from_="a", from_email="a", date="not a date").timestamp == 0.0
