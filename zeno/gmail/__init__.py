"""Gmail API integration — per-user client over stored OAuth tokens."""

from zeno.gmail.client import GmailService, UserGmailClient
from zeno.gmail.models import Email, ThreadMessage, extract_email_address

__all__ = [
    "GmailService",
    "UserGmailClient",
    "Email",
    "ThreadMessage",
    "extract_email_address",
]
