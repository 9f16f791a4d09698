"""Processed email listing."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from zeno.api.deps import get_db, require_user
from zeno.db.connection import Database
from zeno.db.models import EmailRepository

router = APIRouter(prefix="/api")


@router.get("/emails/{user_email}")
async def list_emails(
    user_email: str,
    category: int | None = None,
    limit: int = 50,
    db: Database = Depends(get_db),
) -> list[dict]:
    require_user(db, user_email)
    rows = EmailRepository(db).list_for_user(user_email, category=category, limit=limit)
    for row in rows:
        row["is_thread"] = bool(row["is_thread"])
        row["sender_known"] = bool(row["sender_known"])
    return rows
