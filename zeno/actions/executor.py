"""Action executor — carries out one approved action against Gmail."""

from __future__ import annotations

import logging
from typing import Any

from zeno.actions.models import Action, ActionStatus, ActionType, ApprovalSource
from zeno.actions.repository import ActionRepository
from zeno.context.thread import format_thread_for_ai
from zeno.draft.engine import DraftEngine
from zeno.gmail.client import UserGmailClient
from zeno.gmail.models import extract_email_address
from zeno.users.settings import UserSettings

logger = logging.getLogger(__name__)

CALENDAR_UNAVAILABLE = "Calendar integration not available"
_CALENDAR_TYPES = {ActionType.BOOK_MEETING, ActionType.ACCEPT_MEETING, ActionType.DECLINE_MEETING}


class ActionFailed(Exception):
    """Raised by a handler when the action cannot be carried out."""


class ActionExecutor:
    """Runs queued actions: executing -> completed, or failed with the error."""

    def __init__(self, actions: ActionRepository, draft_engine: DraftEngine):
        self.actions = actions
        self.draft_engine = draft_engine

    def execute(self, action_id: int, client: UserGmailClient, settings: UserSettings) -> Action:
        action = self.actions.get(action_id)
        if action.status == ActionStatus.PENDING and not action.requires_approval:
            action = self.actions.approve(action.id, ApprovalSource.AUTO)
        # Raises InvalidTransitionError unless the action is approved
        action = self.actions.update_status(action.id, ActionStatus.EXECUTING)

        try:
            result = self._dispatch(action, client, settings)
        except Exception as e:
            logger.error("Action %d (%s) failed: %s", action.id, action.action_type.value, e)
            return self.actions.update_status(
                action.id, ActionStatus.FAILED, error_message=str(e)
            )

        logger.info("Action %d (%s) completed", action.id, action.action_type.value)
        return self.actions.update_status(action.id, ActionStatus.COMPLETED, result=result)

    def _dispatch(
        self, action: Action, client: UserGmailClient, settings: UserSettings
    ) -> dict[str, Any]:
        if action.action_type in _CALENDAR_TYPES:
            raise ActionFailed(CALENDAR_UNAVAILABLE)
        if action.action_type == ActionType.DRAFT_REPLY:
            return self._draft_reply(action, client, settings)
        if action.action_type == ActionType.SEND_EMAIL:
            return self._send_email(action, client)
        if action.action_type == ActionType.FOLLOW_UP:
            return self._follow_up(action, client, settings)
        if action.action_type == ActionType.ARCHIVE:
            return self._archive(action, client)
        if action.action_type == ActionType.FORWARD:
            return self._forward(action, client)
        raise ActionFailed(f"Unknown action type: {action.action_type.value}")

    def _draft_reply(
        self, action: Action, client: UserGmailClient, settings: UserSettings
    ) -> dict[str, Any]:
        if not action.email_id:
            raise ActionFailed("Could not find original email")
        email = client.get_email(action.email_id)

        body = action.payload.get("draft_content")
        if not body:
            thread_context = ""
            try:
                thread_context = format_thread_for_ai(
                    client.get_thread_messages(email.thread_id, client.user_email)
                )
            except Exception as e:
                logger.info("Could not load thread context: %s", e)

            extra = ""
            if action.payload.get("tone"):
                extra += f"\nTone: {action.payload['tone']}"
            if action.payload.get("points_to_address"):
                extra += f"\nKey points to address: {', '.join(action.payload['points_to_address'])}"
            if action.user_instruction:
                extra += f"\nUser instruction: {action.user_instruction}"

            body = self.draft_engine.generate_draft_response(
                email.from_,
                email.subject,
                email.body or email.body_preview,
                settings.temperature,
                settings.signature,
                settings.writing_style + extra,
                thread_context,
                user_email=action.user_email,
                gmail_id=email.id,
            )

        draft_id = client.create_draft(
            email.from_email,
            email.subject,
            body,
            email.thread_id,
            cc=email.cc,
            user_email=action.user_email,
        )
        return {"success": True, "draft_id": draft_id, "message": "Draft created"}

    def _send_email(self, action: Action, client: UserGmailClient) -> dict[str, Any]:
        to = action.payload.get("to")
        body = action.payload.get("body")
        if not to or not body:
            raise ActionFailed("send_email needs 'to' and 'body'")
        subject = action.payload.get("subject") or f"Re: {action.email_subject or 'Following up'}"
        sent = client.send_email(to, subject, body, action.thread_id)
        return {"success": True, "message_id": sent.get("id"), "message": "Email sent"}

    def _follow_up(
        self, action: Action, client: UserGmailClient, settings: UserSettings
    ) -> dict[str, Any]:
        recipient = extract_email_address(action.email_from or "")
        if not recipient:
            raise ActionFailed("Could not determine recipient email")
        body = (
            "Hi,\n\n"
            f'I wanted to follow up on my previous email regarding "{action.email_subject}".\n\n'
            "Please let me know if you have any questions or need any additional information."
        )
        if settings.signature:
            body += f"\n\n{settings.signature}"
        client.send_email(recipient, f"Re: {action.email_subject}", body, action.thread_id)
        return {"success": True, "message": "Follow-up sent"}

    def _archive(self, action: Action, client: UserGmailClient) -> dict[str, Any]:
        if not action.email_id:
            raise ActionFailed("No email to archive")
        client.archive(action.email_id)
        return {"success": True, "message": "Email archived"}

    def _forward(self, action: Action, client: UserGmailClient) -> dict[str, Any]:
        forward_to = action.payload.get("forward_to")
        if not forward_to or not action.email_id:
            raise ActionFailed("forward needs 'forward_to' and an email")
        email = client.get_email(action.email_id)
        forwarded = (
            "---------- Forwarded message ---------\n"
            f"From: {email.from_}\n"
            f"Date: {email.date}\n"
            f"Subject: {email.subject}\n"
            f"To: {email.to}\n\n"
            f"{email.body or email.body_preview}"
        )
        note = action.payload.get("forward_note")
        body = f"{note}\n\n{forwarded}" if note else forwarded
        sent = client.send_email(forward_to, f"Fwd: {email.subject}", body)
        return {"success": True, "message_id": sent.get("id"), "message": "Email forwarded"}
