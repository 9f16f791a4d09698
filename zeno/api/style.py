"""Writing-style route — build the user's style profile from their sent mail."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from zeno.api.deps import get_db, get_gmail, get_style_analyzer, require_user
from zeno.db.connection import Database
from zeno.draft.engine import DraftGenerationError
from zeno.draft.style import StyleAnalysisError, WritingStyleAnalyzer
from zeno.gmail.client import GmailService
from zeno.users.settings import UserSettings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class AnalyzeStyleRequest(BaseModel):
    userEmail: str | None = None


@router.post("/analyze-style")
async def analyze_style(
    body: AnalyzeStyleRequest,
    db: Database = Depends(get_db),
    gmail: GmailService = Depends(get_gmail),
    analyzer: WritingStyleAnalyzer = Depends(get_style_analyzer),
) -> dict:
    if not body.userEmail:
        raise HTTPException(status_code=400, detail="User email is required")
    user = require_user(db, body.userEmail)
    settings = UserSettings(db, user.email)

    def _analyze():
        return analyzer.analyze(gmail.for_user(user), settings)

    try:
        profile = await asyncio.to_thread(_analyze)
    except StyleAnalysisError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DraftGenerationError as e:
        logger.error("Style analysis for %s failed: %s", user.email, e)
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True, "style": profile.style, "emailsAnalyzed": profile.emails_analyzed}
