"""Settings routes — read merged settings, save changes."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zeno.api.deps import get_db, require_user
from zeno.categories import CategorySet
from zeno.db.connection import Database
from zeno.users.settings import UserSettings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class SettingsUpdate(BaseModel):
    """Known settings are type-checked; other keys are stored as given."""

    model_config = ConfigDict(extra="allow")

    temperature: float | None = Field(default=None, ge=0, le=1)
    signature: str | None = None
    drafts_enabled: bool | None = None
    use_writing_style: bool | None = None
    writing_style: str | None = None
    auto_poll_enabled: bool | None = None
    auto_poll_interval: int | None = Field(default=None, gt=0)
    categories: dict[str, Any] | None = None
    schemaVersions: dict[str, str] | None = None


def _validation_detail(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


@router.get("/settings/{user_email}")
async def get_settings(user_email: str, db: Database = Depends(get_db)) -> dict:
    require_user(db, user_email)
    return UserSettings(db, user_email).all()


@router.put("/settings/{user_email}")
async def update_settings(
    user_email: str,
    body: dict[str, Any] = Body(...),
    db: Database = Depends(get_db),
) -> dict:
    require_user(db, user_email)
    try:
        values = SettingsUpdate.model_validate(body).model_dump(exclude_unset=True)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e))

    categories = values.get("categories")
    if categories is not None:
        try:
            # Normalises the stored form and drops non-numeric keys
            values["categories"] = CategorySet.from_mapping(categories).to_mapping()
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"Invalid categories: {e}")

    settings = UserSettings(db, user_email)
    settings.update(values)
    logger.info("Updated settings for %s: %s", user_email, sorted(values))
    return settings.all()


@router.post("/settings/{user_email}/reset")
async def reset_settings(
    user_email: str, schema: str | None = None, db: Database = Depends(get_db)
) -> dict:
    require_user(db, user_email)
    settings = UserSettings(db, user_email)
    try:
        settings.reset(schema)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return settings.all()
