"""Gmail data models — Email, ThreadMessage."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from email.utils import parsedate_to_datetime

_ANGLE_ADDR_RE = re.compile(r"<([^>]+)>")


def extract_email_address(header: str) -> str:
    """``"Alice <Alice@Example.com>"`` -> ``"alice@example.com"``."""
    match = _ANGLE_ADDR_RE.search(header or "")
    if match:
        return match.group(1).lower()
    return (header or "").strip().lower()


def _headers(payload: dict) -> dict[str, str]:
    """Header map keyed by lowercased name; first occurrence wins."""
    headers: dict[str, str] = {}
    for h in payload.get("headers", []):
        name = (h.get("name") or "").lower()
        if name and name not in headers:
            headers[name] = h.get("value") or ""
    return headers


def _decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def extract_body(payload: dict) -> str:
    """Top-level body data, else the first text/plain part, else text/html."""
    data = payload.get("body", {}).get("data", "")
    if data:
        return _decode(data)

    parts = payload.get("parts", [])
    text_part = next((p for p in parts if p.get("mimeType") == "text/plain"), None)
    html_part = next((p for p in parts if p.get("mimeType") == "text/html"), None)
    part = text_part or html_part
    if part:
        data = part.get("body", {}).get("data", "")
        if data:
            return _decode(data)
    return ""


@dataclass
class Email:
    id: str
    thread_id: str
    subject: str = ""
    from_: str = ""
    from_email: str = ""
    to: str = ""
    cc: str | None = None
    date: str = ""
    body_preview: str = ""
    body: str = ""
    references: str | None = None
    in_reply_to: str | None = None
    message_id: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> Email:
        """Parse a Gmail API message resource fetched with ``format=full``."""
        payload = data.get("payload", {})
        headers = _headers(payload)
        from_header = headers.get("from", "")

        return cls(
            id=data["id"],
            thread_id=data.get("threadId", ""),
            subject=headers.get("subject", ""),
            from_=from_header,
            from_email=extract_email_address(from_header),
            to=headers.get("to", ""),
            cc=headers.get("cc") or None,
            date=headers.get("date", ""),
            body_preview=data.get("snippet", ""),
            body=extract_body(payload),
            references=headers.get("references") or None,
            in_reply_to=headers.get("in-reply-to") or None,
            message_id=headers.get("message-id") or None,
        )


# Per-message body cap when loading a whole conversation
THREAD_MESSAGE_BODY_CHARS = 2000


@dataclass
class ThreadMessage:
    from_: str
    from_email: str
    to: str = ""
    cc: str | None = None
    date: str = ""
    body: str = ""
    is_from_user: bool = False

    @classmethod
    def from_api(cls, data: dict, user_email: str) -> ThreadMessage:
        payload = data.get("payload", {})
        headers = _headers(payload)
        from_header = headers.get("from", "")
        from_email = extract_email_address(from_header)
        return cls(
            from_=from_header,
            from_email=from_email,
            to=headers.get("to", ""),
            cc=headers.get("cc") or None,
            date=headers.get("date", ""),
            body=extract_body(payload)[:THREAD_MESSAGE_BODY_CHARS],
            is_from_user=from_email == (user_email or "").lower(),
        )

    @property
    def timestamp(self) -> float:
        """Seconds since epoch for sorting; unparseable dates sort first."""
        try:
            return parsedate_to_datetime(self.date).timestamp()
        except (TypeError, ValueError, IndexError):
            return 0.0
