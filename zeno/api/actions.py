"""Action queue routes — list, approve, cancel, execute."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from zeno.actions.executor import ActionExecutor
from zeno.actions.models import (
    ActionNotFoundError,
    ActionType,
    ApprovalSource,
    InvalidTransitionError,
)
from zeno.actions.repository import ActionRepository
from zeno.api.deps import get_actions, get_db, get_executor, get_gmail, require_user
from zeno.db.connection import Database
from zeno.gmail.client import GmailService
from zeno.users.settings import UserSettings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/actions")


class ActionCreate(BaseModel):
    action_type: ActionType
    payload: dict[str, Any] = {}
    email_id: str | None = None
    email_subject: str | None = None
    email_from: str | None = None
    thread_id: str | None = None
    user_instruction: str | None = None
    requires_approval: bool = True
    priority: int = 5


class ApproveRequest(BaseModel):
    approved_via: ApprovalSource = ApprovalSource.DASHBOARD


def _lookup(actions: ActionRepository, user_email: str, action_id: int):
    try:
        return actions.get_for_user(user_email, action_id)
    except ActionNotFoundError:
        raise HTTPException(status_code=404, detail="Action not found")


@router.get("/{user_email}")
async def list_pending(
    user_email: str, actions: ActionRepository = Depends(get_actions)
) -> list[dict]:
    return [a.to_dict() for a in actions.pending(user_email)]


@router.get("/{user_email}/history")
async def list_history(
    user_email: str, limit: int = 50, actions: ActionRepository = Depends(get_actions)
) -> list[dict]:
    return [a.to_dict() for a in actions.history(user_email, limit)]


@router.post("/{user_email}")
async def create_action(
    user_email: str,
    body: ActionCreate,
    db: Database = Depends(get_db),
    actions: ActionRepository = Depends(get_actions),
) -> dict:
    require_user(db, user_email)
    action = actions.create(user_email, **body.model_dump())
    return action.to_dict()


@router.post("/{user_email}/{action_id}/approve")
async def approve_action(
    user_email: str,
    action_id: int,
    body: ApproveRequest | None = None,
    actions: ActionRepository = Depends(get_actions),
) -> dict:
    _lookup(actions, user_email, action_id)
    via = body.approved_via if body else ApprovalSource.DASHBOARD
    try:
        return actions.approve(action_id, via).to_dict()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{user_email}/{action_id}/cancel")
async def cancel_action(
    user_email: str, action_id: int, actions: ActionRepository = Depends(get_actions)
) -> dict:
    _lookup(actions, user_email, action_id)
    try:
        return actions.cancel(action_id).to_dict()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{user_email}/{action_id}/execute")
async def execute_action(
    user_email: str,
    action_id: int,
    db: Database = Depends(get_db),
    gmail: GmailService = Depends(get_gmail),
    actions: ActionRepository = Depends(get_actions),
    executor: ActionExecutor = Depends(get_executor),
) -> dict:
    user = require_user(db, user_email)
    _lookup(actions, user_email, action_id)
    settings = UserSettings(db, user_email)

    def _run():
        return executor.execute(action_id, gmail.for_user(user), settings)

    try:
        action = await asyncio.to_thread(_run)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return action.to_dict()
