"""Tests for the action queue lifecycle and the executor."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from tests.conftest import USER_EMAIL, make_email
from zeno.actions.executor import CALENDAR_UNAVAILABLE, ActionExecutor
from zeno.actions.models import (
    ActionNotFoundError,
    ActionStatus,
    ActionType,
    ApprovalSource,
    InvalidTransitionError,
    validate_transition,
)
from zeno.actions.repository import ActionRepository
from zeno.draft.engine import DraftEngine
from zeno.gmail.client import UserGmailClient
from zeno.users.settings import UserSettings


@pytest.fixture
def actions(db, user):
    return ActionRepository(db)


@pytest.fixture
def draft_engine():
    engine = MagicMock(spec=DraftEngine)
    engine.generate_draft_response.return_value = "Generated reply"
    return engine


@pytest.fixture
def executor(actions, draft_engine):
    return ActionExecutor(actions, draft_engine)


@pytest.fixture
def client():
    client = MagicMock(spec=UserGmailClient)
    client.user_email = USER_EMAIL
    client.get_email.return_value = make_email(cc="carol@x.com")
    client.get_thread_messages.return_value = []
    client.create_draft.return_value = "draft_1"
    client.send_email.return_value = {"id": "sent_1"}
    return client


@pytest.fixture
def settings(db, user):
    return UserSettings(db, USER_EMAIL)


class TestTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            (ActionStatus.PENDING, ActionStatus.APPROVED),
            (ActionStatus.PENDING, ActionStatus.CANCELLED),
            (ActionStatus.APPROVED, ActionStatus.EXECUTING),
            (ActionStatus.APPROVED, ActionStatus.CANCELLED),
            (ActionStatus.EXECUTING, ActionStatus.COMPLETED),
            (ActionStatus.EXECUTING, ActionStatus.FAILED),
        ],
    )
    def test_allowed(self, current, target):
        validate_transition(1, current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (ActionStatus.PENDING, ActionStatus.EXECUTING),
            (ActionStatus.PENDING, ActionStatus.COMPLETED),
            (ActionStatus.EXECUTING, ActionStatus.CANCELLED),
            (ActionStatus.COMPLETED, ActionStatus.FAILED),
            (ActionStatus.CANCELLED, ActionStatus.APPROVED),
            (ActionStatus.FAILED, ActionStatus.EXECUTING),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(InvalidTransitionError):
            validate_transition(1, current, target)


class TestActionRepository:
    def test_create_defaults(self, actions):
        action = actions.create(USER_EMAIL, ActionType.ARCHIVE, email_id="m1")
        assert action.status == ActionStatus.PENDING
        assert action.priority == 5
        assert action.requires_approval is True
        assert action.payload == {}
        assert action.expires_at is not None

    def test_pending_ordered_by_priority_then_age(self, actions):
        low = actions.create(USER_EMAIL, ActionType.ARCHIVE, priority=9)
        first = actions.create(USER_EMAIL, ActionType.ARCHIVE, priority=1)
        second = actions.create(USER_EMAIL, ActionType.ARCHIVE, priority=1)
        assert [a.id for a in actions.pending(USER_EMAIL)] == [first.id, second.id, low.id]

    def test_approve_records_source(self, actions):
        action = actions.create(USER_EMAIL, ActionType.ARCHIVE)
        approved = actions.approve(action.id, ApprovalSource.EMAIL_REPLY)
        assert approved.status == ActionStatus.APPROVED
        assert approved.approved_via == ApprovalSource.EMAIL_REPLY
        assert approved.approved_at is not None
        assert actions.approved(USER_EMAIL)[0].id == action.id

    def test_cannot_approve_twice(self, actions):
        action = actions.create(USER_EMAIL, ActionType.ARCHIVE)
        actions.approve(action.id)
        with pytest.raises(InvalidTransitionError):
            actions.approve(action.id)

    def test_cancel_and_history(self, actions):
        action = actions.create(USER_EMAIL, ActionType.ARCHIVE)
        actions.cancel(action.id)
        assert actions.pending(USER_EMAIL) == []
        assert [a.status for a in actions.history(USER_EMAIL)] == [ActionStatus.CANCELLED]

    def test_completed_sets_executed_at(self, actions):
        action = actions.create(USER_EMAIL, ActionType.ARCHIVE)
        actions.approve(action.id)
        actions.update_status(action.id, ActionStatus.EXECUTING)
        done = actions.update_status(action.id, ActionStatus.COMPLETED, result={"ok": True})
        assert done.executed_at is not None
        assert done.result == {"ok": True}

    def test_not_found(self, actions):
        with pytest.raises(ActionNotFoundError):
            actions.get(999)

    def test_other_users_action_not_visible(self, actions, user_repo):
        user_repo.create("other@x.com")
        action = actions.create("other@x.com", ActionType.ARCHIVE)
        with pytest.raises(ActionNotFoundError):
            actions.get_for_user(USER_EMAIL, action.id)

    def test_for_email(self, actions):
        actions.create(USER_EMAIL, ActionType.ARCHIVE, email_id="m1")
        actions.create(USER_EMAIL, ActionType.FORWARD, email_id="m2")
        assert [a.action_type for a in actions.for_email(USER_EMAIL, "m1")] == [ActionType.ARCHIVE]


class TestActionExecutor:
    def _approved(self, actions, action_type, **kwargs):
        action = actions.create(USER_EMAIL, action_type, **kwargs)
        return actions.approve(action.id)

    def test_pending_action_is_refused(self, executor, actions, client, settings):
        action = actions.create(USER_EMAIL, ActionType.ARCHIVE, email_id="m1")
        with pytest.raises(InvalidTransitionError):
            executor.execute(action.id, client, settings)
        client.archive.assert_not_called()

    def test_auto_approves_when_not_required(self, executor, actions, client, settings):
        action = actions.create(
            USER_EMAIL, ActionType.ARCHIVE, email_id="m1", requires_approval=False
        )
        done = executor.execute(action.id, client, settings)
        assert done.status == ActionStatus.COMPLETED
        assert done.approved_via == ApprovalSource.AUTO

    def test_archive(self, executor, actions, client, settings):
        action = self._approved(actions, ActionType.ARCHIVE, email_id="m1")
        done = executor.execute(action.id, client, settings)
        client.archive.assert_called_once_with("m1")
        assert done.status == ActionStatus.COMPLETED
        assert done.result["message"] == "Email archived"

    def test_draft_reply_with_given_content(self, executor, actions, client, settings, draft_engine):
        action = self._approved(
            actions, ActionType.DRAFT_REPLY, email_id="msg_1",
            payload={"draft_content": "Sounds good."},
        )
        done = executor.execute(action.id, client, settings)
        draft_engine.generate_draft_response.assert_not_called()
        args = client.create_draft.call_args
        assert args.args[:4] == ("alice@example.com", "Quarterly numbers", "Sounds good.", "thread_1")
        assert done.result["draft_id"] == "draft_1"

    def test_draft_reply_generates(self, executor, actions, client, settings, draft_engine):
        action = self._approved(
            actions, ActionType.DRAFT_REPLY, email_id="msg_1",
            payload={"tone": "friendly", "points_to_address": ["price", "date"]},
            user_instruction="Say yes",
        )
        executor.execute(action.id, client, settings)
        style = draft_engine.generate_draft_response.call_args.args[5]
        assert "Tone: friendly" in style
        assert "Key points to address: price, date" in style
        assert "User instruction: Say yes" in style
        assert client.create_draft.call_args.args[2] == "Generated reply"

    def test_send_email(self, executor, actions, client, settings):
        action = self._approved(
            actions, ActionType.SEND_EMAIL,
            payload={"to": "bob@x.com", "subject": "Hi", "body": "Hello Bob"},
        )
        done = executor.execute(action.id, client, settings)
        client.send_email.assert_called_once_with("bob@x.com", "Hi", "Hello Bob", None)
        assert done.result["message_id"] == "sent_1"

    def test_send_email_missing_fields_fails(self, executor, actions, client, settings):
        action = self._approved(actions, ActionType.SEND_EMAIL, payload={"to": "bob@x.com"})
        done = executor.execute(action.id, client, settings)
        assert done.status == ActionStatus.FAILED
        assert "'to' and 'body'" in done.error_message
        assert done.executed_at is not None

    def test_follow_up_appends_signature(self, executor, actions, client, settings):
        settings.set("signature", "-- Bob")
        action = self._approved(
            actions, ActionType.FOLLOW_UP, email_from="Alice <alice@x.com>",
            email_subject="Proposal", thread_id="t1",
        )
        executor.execute(action.id, client, settings)
        to, subject, body, thread_id = client.send_email.call_args.args
        assert (to, subject, thread_id) == ("alice@x.com", "Re: Proposal", "t1")
        assert body.endswith("\n\n-- Bob")

    def test_forward(self, executor, actions, client, settings):
        action = self._approved(
            actions, ActionType.FORWARD, email_id="msg_1",
            payload={"forward_to": "dave@x.com", "forward_note": "FYI"},
        )
        executor.execute(action.id, client, settings)
        to, subject, body = client.send_email.call_args.args
        assert to == "dave@x.com"
        assert subject == "Fwd: Quarterly numbers"
        assert body.startswith("FYI\n\n---------- Forwarded message ---------")

    @pytest.mark.parametrize(
        "action_type",
        [ActionType.BOOK_MEETING, ActionType.ACCEPT_MEETING, ActionType.DECLINE_MEETING],
    )
    def test_calendar_actions_fail(self, executor, actions, client, settings, action_type):
        action = self._approved(actions, action_type)
        done = executor.execute(action.id, client, settings)
        assert done.status == ActionStatus.FAILED
        assert done.error_message == CALENDAR_UNAVAILABLE

    def test_gmail_error_marks_failed(self, executor, actions, client, settings):
        client.archive.side_effect = RuntimeError("quota exceeded")
        action = self._approved(actions, ActionType.ARCHIVE, email_id="m1")
        done = executor.execute(action.id, client, settings)
        assert done.status == ActionStatus.FAILED
        assert done.error_message == "quota exceeded"
