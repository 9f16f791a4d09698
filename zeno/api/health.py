"""Health checks."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends

from zeno.api.deps import get_db, get_llm
from zeno.db.connection import Database
from zeno.llm.gateway import LLMGateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


@router.get("/health")
async def health(db: Database = Depends(get_db)) -> dict:
    try:
        db.execute_one("SELECT 1 AS ok")
        database = "ok"
    except Exception as e:
        logger.error("Health check database error: %s", e)
        database = "error"
    return {"status": "ok" if database == "ok" else "degraded", "database": database}


@router.get("/health/llm")
async def llm_health(llm: LLMGateway = Depends(get_llm)) -> dict:
    """Ping the classify and draft models. Makes one small completion per model."""
    models = await asyncio.to_thread(llm.health_check)
    return {"status": "ok" if all(models.values()) else "degraded", "models": models}
