"""Debug routes — LLM call log and per-email debugging view."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from zeno.api.deps import get_db
from zeno.db.connection import Database
from zeno.db.models import EmailRepository, LLMCallRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


@router.get("/llm-calls")
async def recent_llm_calls(limit: int = 100, db: Database = Depends(get_db)) -> list[dict]:
    return LLMCallRepository(db).get_recent(limit)


@router.get("/llm-calls/stats")
async def llm_call_stats(user_email: str | None = None, db: Database = Depends(get_db)) -> dict:
    """Token usage and latency, across all users or for one."""
    return LLMCallRepository(db).get_stats(user_email)


@router.get("/debug/emails/{user_email}/{gmail_id}")
async def email_debug(user_email: str, gmail_id: str, db: Database = Depends(get_db)) -> dict:
    """The stored row for one processed email plus every LLM call made for it."""
    email = EmailRepository(db).get(user_email, gmail_id)
    if not email:
        raise HTTPException(status_code=404, detail=f"Email {gmail_id} not found")
    return {"email": email, "llm_calls": LLMCallRepository(db).get_by_gmail_id(gmail_id)}
