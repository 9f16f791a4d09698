"""Database operations for the action queue."""

from __future__ import annotations

import json
import logging
from typing import Any

from zeno.actions.models import (
    DEFAULT_PRIORITY,
    Action,
    ActionNotFoundError,
    ActionStatus,
    ActionType,
    ApprovalSource,
    TERMINAL_STATUSES,
    validate_transition,
)
from zeno.db.connection import Database
from zeno.db.models import utcnow_iso

logger = logging.getLogger(__name__)


class ActionRepository:
    """Queue of pending actions; every status change goes through the lifecycle check."""

    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        user_email: str,
        action_type: ActionType,
        payload: dict[str, Any] | None = None,
        email_id: str | None = None,
        email_subject: str | None = None,
        email_from: str | None = None,
        thread_id: str | None = None,
        user_instruction: str | None = None,
        requires_approval: bool = True,
        priority: int = DEFAULT_PRIORITY,
    ) -> Action:
        action_id = self.db.execute_write(
            """INSERT INTO action_queue (
                user_email, action_type, payload, email_id, email_subject, email_from,
                thread_id, user_instruction, requires_approval, priority
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user_email,
                ActionType(action_type).value,
                json.dumps(payload or {}),
                email_id,
                email_subject,
                email_from,
                thread_id,
                user_instruction,
                int(requires_approval),
                priority,
            ),
        )
        logger.info("Queued %s action %d for %s", ActionType(action_type).value, action_id, user_email)
        return self.get(action_id)

    def get(self, action_id: int) -> Action:
        row = self.db.execute_one("SELECT * FROM action_queue WHERE id = ?", (action_id,))
        if not row:
            raise ActionNotFoundError(action_id)
        return Action.from_row(row)

    def get_for_user(self, user_email: str, action_id: int) -> Action:
        action = self.get(action_id)
        if action.user_email != user_email:
            raise ActionNotFoundError(action_id)
        return action

    def pending(self, user_email: str) -> list[Action]:
        """Pending actions, most urgent (lowest priority number) first, then oldest."""
        rows = self.db.execute(
            """SELECT * FROM action_queue
               WHERE user_email = ? AND status = 'pending'
               ORDER BY priority ASC, created_at ASC, id ASC""",
            (user_email,),
        )
        return [Action.from_row(r) for r in rows]

    def approved(self, user_email: str) -> list[Action]:
        rows = self.db.execute(
            """SELECT * FROM action_queue
               WHERE user_email = ? AND status = 'approved'
               ORDER BY priority ASC, created_at ASC, id ASC""",
            (user_email,),
        )
        return [Action.from_row(r) for r in rows]

    def for_email(self, user_email: str, email_id: str) -> list[Action]:
        rows = self.db.execute(
            """SELECT * FROM action_queue WHERE user_email = ? AND email_id = ?
               ORDER BY created_at DESC, id DESC""",
            (user_email, email_id),
        )
        return [Action.from_row(r) for r in rows]

    def history(self, user_email: str, limit: int = 50) -> list[Action]:
        """Finished actions (completed, failed or cancelled), most recent first."""
        placeholders = ", ".join("?" for _ in TERMINAL_STATUSES)
        rows = self.db.execute(
            f"""SELECT * FROM action_queue
                WHERE user_email = ? AND status IN ({placeholders})
                ORDER BY COALESCE(executed_at, updated_at) DESC, id DESC
                LIMIT ?""",
            (user_email, *sorted(s.value for s in TERMINAL_STATUSES), limit),
        )
        return [Action.from_row(r) for r in rows]

    def approve(self, action_id: int, approved_via: ApprovalSource = ApprovalSource.DASHBOARD) -> Action:
        action = self.get(action_id)
        validate_transition(action.id, action.status, ActionStatus.APPROVED)
        now = utcnow_iso()
        self.db.execute_write(
            """UPDATE action_queue
               SET status = 'approved', approved_at = ?, approved_via = ?, updated_at = ?
               WHERE id = ?""",
            (now, ApprovalSource(approved_via).value, now, action_id),
        )
        return self.get(action_id)

    def cancel(self, action_id: int) -> Action:
        return self.update_status(action_id, ActionStatus.CANCELLED)

    def update_status(
        self,
        action_id: int,
        status: ActionStatus,
        result: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> Action:
        """Move an action along its lifecycle; finished runs get ``executed_at``."""
        action = self.get(action_id)
        status = ActionStatus(status)
        validate_transition(action.id, action.status, status)
        now = utcnow_iso()
        executed_at = now if status in (ActionStatus.COMPLETED, ActionStatus.FAILED) else None
        self.db.execute_write(
            """UPDATE action_queue
               SET status = ?, result = ?, error_message = ?, updated_at = ?,
                   executed_at = COALESCE(?, executed_at)
               WHERE id = ?""",
            (
                status.value,
                json.dumps(result) if result is not None else None,
                error_message,
                now,
                executed_at,
                action_id,
            ),
        )
        return self.get(action_id)
