"""Gmail API client — per-user wrapper built from stored OAuth tokens."""

from __future__ import annotations

import base64
import logging
import re
from typing import Any

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from zeno.config import AppConfig
from zeno.db.models import User
from zeno.gmail.labels import closest_gmail_color
from zeno.gmail.models import Email, ThreadMessage, extract_email_address
from zeno.gmail.retry import execute_with_retry

logger = logging.getLogger(__name__)

_HTML_TAG_RE = re.compile(r"<[^>]+>")
_HTML_START_RE = re.compile(r"<[a-z]", re.IGNORECASE)
_RE_PREFIX_RE = re.compile(r"^Re:\s*", re.IGNORECASE)


def is_html(body: str) -> bool:
    return bool(_HTML_TAG_RE.search(body))


def format_html_body(body: str) -> str:
    """Wrap the plain-text part of a draft in Gmail's native ``<div>`` lines.

    Everything from the first HTML tag on (usually an HTML signature) is
    kept as-is after a blank line.
    """
    match = _HTML_START_RE.search(body)
    tag_index = match.start() if match else -1
    plain_part = body[:tag_index] if tag_index > 0 else ""
    html_part = body[tag_index:] if tag_index > 0 else body

    html_lines = "\n".join(
        "<div><br></div>" if line.strip() == "" else f"<div>{line}</div>"
        for line in plain_part.split("\n")
    )
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        '<head><meta charset="utf-8"></head>\n'
        "<body>\n"
        f"{html_lines}\n"
        "<div><br></div>\n"
        f"{html_part}\n"
        "</body>\n"
        "</html>"
    )


def reply_subject(subject: str) -> str:
    return f"Re: {_RE_PREFIX_RE.sub('', subject or '', count=1)}"


def filter_cc(cc: str | None, user_email: str | None) -> list[str]:
    """Split a CC header and drop the user's own address."""
    if not cc:
        return []
    addresses = [addr.strip() for addr in cc.split(",")]
    if not user_email:
        return addresses
    user = user_email.lower()
    return [addr for addr in addresses if extract_email_address(addr) != user]


def encode_message(lines: list[str], separator: str = "\r\n") -> str:
    raw = separator.join(lines).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class GmailService:
    """Top-level Gmail service — creates per-user clients."""

    def __init__(self, config: AppConfig):
        self.config = config

    def credentials_for(self, user: User) -> Credentials:
        google_config = self.config.google
        return Credentials(
            token=user.access_token,
            refresh_token=user.refresh_token,
            token_uri=google_config.token_uri,
            client_id=google_config.client_id or None,
            client_secret=google_config.client_secret or None,
            scopes=google_config.scopes,
        )

    def refresh_access_token(self, user: User) -> str:
        """Exchange the stored refresh token for a fresh access token."""
        creds = self.credentials_for(user)
        creds.refresh(Request())
        return creds.token

    def for_user(self, user: User) -> UserGmailClient:
        """Build a client for one user; expired access tokens refresh on first call."""
        creds = self.credentials_for(user)
        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return UserGmailClient(service, user.email)


class UserGmailClient:
    """Gmail operations for a single user. Errors propagate to the caller."""

    def __init__(self, service: Any, user_email: str):
        self.service = service
        self.user_email = user_email
        self._gmail = service.users()

    def _exec(self, request: Any, operation: str = "API call") -> Any:
        return execute_with_retry(request, operation=operation)

    def get_emails(self, max_results: int = 10, query: str = "is:unread") -> list[Email]:
        """List messages matching a query and fetch each in full."""
        results = self._exec(
            self._gmail.messages().list(userId="me", q=query, maxResults=max_results),
            operation="messages.list",
        )
        return [self.get_email(item["id"]) for item in results.get("messages", [])]

    def get_email(self, message_id: str) -> Email:
        data = self._exec(
            self._gmail.messages().get(userId="me", id=message_id, format="full"),
            operation=f"messages.get({message_id})",
        )
        return Email.from_api(data)

    def get_thread_messages(self, thread_id: str, user_email: str | None = None) -> list[ThreadMessage]:
        """All messages in a thread, oldest first."""
        data = self._exec(
            self._gmail.threads().get(userId="me", id=thread_id, format="full"),
            operation=f"threads.get({thread_id})",
        )
        owner = user_email or self.user_email
        messages = [ThreadMessage.from_api(m, owner) for m in data.get("messages", [])]
        messages.sort(key=lambda m: m.timestamp)
        return messages

    def apply_label(self, message_id: str, label_id: str) -> None:
        self._exec(
            self._gmail.messages().modify(
                userId="me", id=message_id, body={"addLabelIds": [label_id]}
            ),
            operation=f"messages.modify({message_id})",
        )

    def archive(self, message_id: str) -> None:
        self._exec(
            self._gmail.messages().modify(
                userId="me", id=message_id, body={"removeLabelIds": ["INBOX"]}
            ),
            operation=f"archive({message_id})",
        )

    def create_draft(
        self,
        to: str,
        subject: str,
        body: str,
        thread_id: str,
        cc: str | None = None,
        user_email: str | None = None,
    ) -> str:
        """Create a reply draft in a thread. Returns the draft ID."""
        if is_html(body):
            formatted_body = format_html_body(body)
            content_type = "text/html; charset=utf-8"
        else:
            formatted_body = body
            content_type = "text/plain; charset=utf-8"

        headers = [f"To: {to}"]
        cc_addresses = filter_cc(cc, user_email)
        if cc_addresses:
            headers.append(f"Cc: {', '.join(cc_addresses)}")
        headers += [
            f"Subject: {reply_subject(subject)}",
            f"Content-Type: {content_type}",
            "",
            formatted_body,
        ]

        draft_body = {"message": {"raw": encode_message(headers), "threadId": thread_id}}
        result = self._exec(
            self._gmail.drafts().create(userId="me", body=draft_body),
            operation="drafts.create",
        )
        return result["id"]

    def send_email(
        self, to: str, subject: str, body: str, thread_id: str | None = None
    ) -> dict[str, Any]:
        content_type = "text/html; charset=utf-8" if is_html(body) else "text/plain; charset=utf-8"
        raw = encode_message(
            [f"To: {to}", f"Subject: {subject}", f"Content-Type: {content_type}", "", body],
            separator="\n",
        )
        message: dict[str, Any] = {"raw": raw}
        if thread_id:
            message["threadId"] = thread_id
        return self._exec(
            self._gmail.messages().send(userId="me", body=message),
            operation="messages.send",
        )

    def get_or_create_label(self, name: str, color: str | None = None) -> str:
        """Get existing label by name or create it. Returns label ID."""
        results = self._exec(self._gmail.labels().list(userId="me"), operation="labels.list")
        for label in results.get("labels", []):
            if label["name"] == name:
                if color:
                    self.update_label_color(label["id"], color)
                return label["id"]

        body: dict[str, Any] = {
            "name": name,
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
        }
        if color:
            body["color"] = closest_gmail_color(color)
        result = self._exec(
            self._gmail.labels().create(userId="me", body=body),
            operation=f"labels.create({name})",
        )
        logger.info("Created label: %s -> %s", name, result["id"])
        return result["id"]

    def update_label_color(self, label_id: str, color: str) -> None:
        """Re-apply a category colour to an existing label. Failures are logged only."""
        try:
            self._exec(
                self._gmail.labels().patch(
                    userId="me", id=label_id, body={"color": closest_gmail_color(color)}
                ),
                operation=f"labels.patch({label_id})",
            )
        except Exception as e:
            logger.warning("Failed to update color for label %s: %s", label_id, e)
