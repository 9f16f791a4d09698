"""Per-user settings management — DB-stored values merged over defaults."""

from __future__ import annotations

import copy
import logging
from typing import Any

from zeno.categories import CategorySet, default_categories
from zeno.db.connection import Database
from zeno.db.models import SettingsRepository

logger = logging.getLogger(__name__)

# Stored before any schema version was recorded -> legacy category names
LEGACY_SCHEMA_VERSION = "v1"

CURRENT_SCHEMA_VERSIONS = {"categories": "v2", "draftTemplates": "v1", "notifications": "v1"}

DEFAULT_USER_SETTINGS: dict[str, Any] = {
    "temperature": 0.7,
    "signature": "",
    "drafts_enabled": True,
    "use_writing_style": False,
    "writing_style": "",
    "categories": None,  # filled per schema version
    "auto_poll_enabled": False,
    "auto_poll_interval": 120,
    "schemaVersions": {"categories": "v1", "draftTemplates": "v1", "notifications": "v1"},
}


def deep_merge(defaults: dict[str, Any], user: dict[str, Any]) -> dict[str, Any]:
    """Merge ``user`` over ``defaults``; dicts merge recursively, None never overrides."""
    result = dict(defaults)
    for key, value in user.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(defaults.get(key), dict):
            result[key] = deep_merge(defaults[key], value)
        else:
            result[key] = value
    return result


def merge_with_defaults(stored: dict[str, Any] | None) -> dict[str, Any]:
    """Fill in every default without touching what the user saved.

    A user with no stored settings gets the current category set. A user
    with settings but no recorded schema version is on the legacy set. Saved
    non-empty categories are taken as-is, so deleted defaults stay deleted.
    """
    if not stored:
        merged = copy.deepcopy(DEFAULT_USER_SETTINGS)
        merged["categories"] = default_categories().to_mapping()
        merged["schemaVersions"] = dict(CURRENT_SCHEMA_VERSIONS)
        return merged

    version = (stored.get("schemaVersions") or {}).get("categories") or LEGACY_SCHEMA_VERSION
    defaults = copy.deepcopy(DEFAULT_USER_SETTINGS)
    defaults["categories"] = default_categories(version).to_mapping()

    merged = deep_merge(defaults, stored)
    user_categories = stored.get("categories")
    if isinstance(user_categories, dict) and user_categories:
        merged["categories"] = user_categories
    return merged


class UserSettings:
    """Manages per-user settings, backed by DB with defaults filled in on read."""

    def __init__(self, db: Database, user_email: str):
        self.repo = SettingsRepository(db)
        self.user_email = user_email
        self._merged: dict[str, Any] | None = None

    def get(self, key: str, default: Any = None) -> Any:
        val = self.all().get(key)
        return val if val is not None else default

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: dict[str, Any]) -> None:
        """Save keys; a user's first save records the current schema versions."""
        if "schemaVersions" not in values and not self.stored():
            values = {**values, "schemaVersions": dict(CURRENT_SCHEMA_VERSIONS)}
        for key, value in values.items():
            self.repo.set(self.user_email, key, value)
        self._merged = None

    def stored(self) -> dict[str, Any]:
        return self.repo.get_all(self.user_email)

    def all(self) -> dict[str, Any]:
        if self._merged is None:
            self._merged = merge_with_defaults(self.stored())
        return self._merged

    def reset(self, schema: str | None = None) -> None:
        """Drop everything, or reset just one schema to its current defaults."""
        if schema is None:
            self.repo.delete_all(self.user_email)
            self._merged = None
            return
        if schema != "categories":
            raise ValueError(f"Unknown schema type: {schema}")

        versions = dict(self.all().get("schemaVersions") or {})
        versions["categories"] = CURRENT_SCHEMA_VERSIONS["categories"]
        self.update(
            {
                "categories": default_categories(versions["categories"]).to_mapping(),
                "schemaVersions": versions,
            }
        )
        logger.info("Reset categories for %s to %s defaults", self.user_email, versions["categories"])

    @property
    def temperature(self) -> float:
        return float(self.get("temperature", 0.7))

    @property
    def signature(self) -> str:
        return self.get("signature", "")

    @property
    def drafts_enabled(self) -> bool:
        return bool(self.get("drafts_enabled", True))

    @property
    def writing_style(self) -> str:
        """Writing-style text, only when the user turned the feature on."""
        if self.get("use_writing_style") and self.get("writing_style"):
            return self.get("writing_style")
        return ""

    @property
    def auto_poll_opted_out(self) -> bool:
        """True only when the user saved ``auto_poll_enabled: false`` themselves."""
        return self.stored().get("auto_poll_enabled") is False

    @property
    def categories(self) -> CategorySet:
        return CategorySet.from_mapping(self.get("categories") or {})
