"""Processing routes — on-demand run, scheduled run, label setup."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from zeno.api.deps import get_config, get_db, get_gmail, get_processor, require_user
from zeno.config import AppConfig
from zeno.db.connection import Database
from zeno.db.models import UserRepository
from zeno.gmail.client import GmailService
from zeno.gmail.labels import setup_category_labels
from zeno.processing.pipeline import (
    EmailFailure,
    EmailProcessor,
    LabelsNotSetupError,
    UserNotFoundError,
)
from zeno.users.settings import UserSettings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class ProcessRequest(BaseModel):
    userEmail: str | None = None
    maxEmails: int = 10


class SetupLabelsRequest(BaseModel):
    userEmail: str | None = None


@router.post("/process-emails")
async def process_emails(
    body: ProcessRequest, processor: EmailProcessor = Depends(get_processor)
) -> dict:
    if not body.userEmail:
        raise HTTPException(status_code=400, detail="User email is required")

    try:
        report = await asyncio.to_thread(processor.process_user, body.userEmail, body.maxEmails)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except LabelsNotSetupError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "processed": report.emails_processed,
        "failed": len(report.failures),
        "results": [
            {
                "id": r.gmail_id,
                "subject": r.subject,
                "from": r.from_,
                "category": r.category,
                "confidence": r.confidence,
                "isThread": r.is_thread,
                "draftCreated": r.draft_created,
            }
            for r in report.successes
        ],
        "errors": [
            {"id": r.gmail_id, "error": r.error}
            for r in report.results
            if isinstance(r, EmailFailure)
        ],
    }


@router.get("/cron/process-emails")
async def cron_process_emails(
    authorization: str | None = Header(default=None),
    config: AppConfig = Depends(get_config),
    processor: EmailProcessor = Depends(get_processor),
) -> dict:
    cron_secret = config.server.cron_secret
    if not cron_secret:
        logger.error("Cron secret not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    if authorization != f"Bearer {cron_secret}":
        logger.error("Invalid cron authorization")
        raise HTTPException(status_code=401, detail="Unauthorized")

    reports = await asyncio.to_thread(processor.process_all_users)
    if not reports:
        return {
            "success": True,
            "message": "No users to process",
            "usersProcessed": 0,
            "totalEmailsProcessed": 0,
        }

    return {
        "success": True,
        "usersProcessed": len(reports),
        "totalEmailsProcessed": sum(r.emails_processed for r in reports),
        "totalDraftsCreated": sum(r.drafts_created for r in reports),
        "usersWithErrors": sum(1 for r in reports if r.error),
        "details": [r.to_dict() for r in reports],
    }


@router.post("/setup-labels")
async def setup_labels(
    body: SetupLabelsRequest,
    db: Database = Depends(get_db),
    gmail: GmailService = Depends(get_gmail),
) -> dict:
    """Create a Gmail label per enabled category and store their ids."""
    if not body.userEmail:
        raise HTTPException(status_code=400, detail="User email is required")
    user = require_user(db, body.userEmail)
    categories = UserSettings(db, user.email).categories

    def _setup() -> dict[str, str]:
        return setup_category_labels(gmail.for_user(user), categories)

    label_ids = await asyncio.to_thread(_setup)
    UserRepository(db).set_labels(user.email, label_ids)
    return {"success": True, "labels": label_ids}
