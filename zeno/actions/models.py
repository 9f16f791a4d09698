"""Action queue records — things the assistant may do for a user once approved."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(str, Enum):
    DRAFT_REPLY = "draft_reply"
    SEND_EMAIL = "send_email"
    BOOK_MEETING = "book_meeting"
    ACCEPT_MEETING = "accept_meeting"
    DECLINE_MEETING = "decline_meeting"
    FOLLOW_UP = "follow_up"
    ARCHIVE = "archive"
    FORWARD = "forward"


class ActionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ApprovalSource(str, Enum):
    EMAIL_REPLY = "email_reply"
    DASHBOARD = "dashboard"
    API = "api"
    AUTO = "auto"


TERMINAL_STATUSES = {ActionStatus.COMPLETED, ActionStatus.FAILED, ActionStatus.CANCELLED}

# status -> statuses it may move to
TRANSITIONS: dict[ActionStatus, set[ActionStatus]] = {
    ActionStatus.PENDING: {ActionStatus.APPROVED, ActionStatus.CANCELLED},
    ActionStatus.APPROVED: {ActionStatus.EXECUTING, ActionStatus.CANCELLED},
    ActionStatus.EXECUTING: {ActionStatus.COMPLETED, ActionStatus.FAILED},
    ActionStatus.COMPLETED: set(),
    ActionStatus.FAILED: set(),
    ActionStatus.CANCELLED: set(),
}

DEFAULT_PRIORITY = 5


class InvalidTransitionError(Exception):
    def __init__(self, action_id: int, current: ActionStatus, target: ActionStatus):
        self.action_id = action_id
        self.current = current
        self.target = target
        super().__init__(f"Action {action_id} cannot move from {current.value} to {target.value}")


class ActionNotFoundError(Exception):
    def __init__(self, action_id: int):
        self.action_id = action_id
        super().__init__(f"Action {action_id} not found")


def validate_transition(action_id: int, current: ActionStatus, target: ActionStatus) -> None:
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(action_id, current, target)


@dataclass
class Action:
    id: int
    user_email: str
    action_type: ActionType
    status: ActionStatus = ActionStatus.PENDING
    payload: dict[str, Any] = field(default_factory=dict)
    email_id: str | None = None
    email_subject: str | None = None
    email_from: str | None = None
    thread_id: str | None = None
    user_instruction: str | None = None
    result: dict[str, Any] | None = None
    error_message: str | None = None
    requires_approval: bool = True
    approved_at: str | None = None
    approved_via: ApprovalSource | None = None
    priority: int = DEFAULT_PRIORITY
    created_at: str | None = None
    updated_at: str | None = None
    executed_at: str | None = None
    expires_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Action:
        return cls(
            id=row["id"],
            user_email=row["user_email"],
            action_type=ActionType(row["action_type"]),
            status=ActionStatus(row["status"]),
            payload=json.loads(row.get("payload") or "{}"),
            email_id=row.get("email_id"),
            email_subject=row.get("email_subject"),
            email_from=row.get("email_from"),
            thread_id=row.get("thread_id"),
            user_instruction=row.get("user_instruction"),
            result=json.loads(row["result"]) if row.get("result") else None,
            error_message=row.get("error_message"),
            requires_approval=bool(row.get("requires_approval", 1)),
            approved_at=row.get("approved_at"),
            approved_via=ApprovalSource(row["approved_via"]) if row.get("approved_via") else None,
            priority=row.get("priority", DEFAULT_PRIORITY),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            executed_at=row.get("executed_at"),
            expires_at=row.get("expires_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_email": self.user_email,
            "action_type": self.action_type.value,
            "status": self.status.value,
            "payload": self.payload,
            "email_id": self.email_id,
            "email_subject": self.email_subject,
            "email_from": self.email_from,
            "thread_id": self.thread_id,
            "user_instruction": self.user_instruction,
            "result": self.result,
            "error_message": self.error_message,
            "requires_approval": self.requires_approval,
            "approved_at": self.approved_at,
            "approved_via": self.approved_via.value if self.approved_via else None,
            "priority": self.priority,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "executed_at": self.executed_at,
            "expires_at": self.expires_at,
        }
