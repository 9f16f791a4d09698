"""Database model helpers — records and repositories over the sqlite schema."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from zeno.db.connection import Database

logger = logging.getLogger(__name__)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class User:
    id: int
    email: str
    display_name: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    labels_created: bool = False
    gmail_label_ids: dict[str, str] = field(default_factory=dict)
    subscription_status: str = "free"
    drafts_created_count: int = 0
    is_active: bool = True

    @property
    def is_subscribed(self) -> bool:
        return self.subscription_status == "active"

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> User:
        return cls(
            id=row["id"],
            email=row["email"],
            display_name=row.get("display_name"),
            access_token=row.get("access_token"),
            refresh_token=row.get("refresh_token"),
            labels_created=bool(row.get("labels_created")),
            gmail_label_ids=json.loads(row.get("gmail_label_ids") or "{}"),
            subscription_status=row.get("subscription_status") or "free",
            drafts_created_count=row.get("drafts_created_count") or 0,
            is_active=bool(row.get("is_active", 1)),
        )


@dataclass
class EmailRecord:
    """One processed email. Written once per processing run."""

    user_email: str
    gmail_id: str
    category: int
    thread_id: str = ""
    subject: str = ""
    from_header: str = ""
    from_email: str = ""
    body_preview: str = ""
    classification_reasoning: str = ""
    classification_confidence: float = 0.5
    is_thread: bool = False
    sender_known: bool = False
    draft_id: str | None = None
    processed_at: str = field(default_factory=utcnow_iso)


class UserRepository:
    """Database operations for users."""

    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        email: str,
        display_name: str | None = None,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ) -> int:
        return self.db.execute_write(
            """INSERT INTO users (email, display_name, access_token, refresh_token)
               VALUES (?, ?, ?, ?)""",
            (email, display_name, access_token, refresh_token),
        )

    def get_by_email(self, email: str) -> User | None:
        row = self.db.execute_one("SELECT * FROM users WHERE email = ?", (email,))
        return User.from_row(row) if row else None

    def get_processable_users(self) -> list[User]:
        """Active users with labels set up and a refresh token on file."""
        rows = self.db.execute(
            """SELECT * FROM users
               WHERE is_active = 1 AND labels_created = 1 AND refresh_token IS NOT NULL
               ORDER BY id"""
        )
        return [User.from_row(r) for r in rows]

    def update_access_token(self, email: str, access_token: str) -> None:
        self.db.execute_write(
            "UPDATE users SET access_token = ?, updated_at = CURRENT_TIMESTAMP WHERE email = ?",
            (access_token, email),
        )

    def set_labels(self, email: str, label_ids: dict[str, str]) -> None:
        """Store {category name: Gmail label id} and mark labels as created."""
        self.db.execute_write(
            """UPDATE users SET gmail_label_ids = ?, labels_created = 1,
               updated_at = CURRENT_TIMESTAMP WHERE email = ?""",
            (json.dumps(label_ids), email),
        )

    def set_subscription_status(self, email: str, status: str) -> None:
        self.db.execute_write(
            "UPDATE users SET subscription_status = ?, updated_at = CURRENT_TIMESTAMP WHERE email = ?",
            (status, email),
        )

    def increment_draft_count(self, email: str) -> None:
        self.db.execute_write(
            "UPDATE users SET drafts_created_count = drafts_created_count + 1 WHERE email = ?",
            (email,),
        )

    def touch(self, email: str) -> None:
        self.db.execute_write(
            "UPDATE users SET updated_at = CURRENT_TIMESTAMP WHERE email = ?", (email,)
        )


class SettingsRepository:
    """Per-user settings, one JSON value per key."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, user_email: str, key: str) -> Any:
        row = self.db.execute_one(
            "SELECT setting_value FROM user_settings WHERE user_email = ? AND setting_key = ?",
            (user_email, key),
        )
        if row:
            return json.loads(row["setting_value"])
        return None

    def set(self, user_email: str, key: str, value: Any) -> None:
        self.db.execute_write(
            """INSERT INTO user_settings (user_email, setting_key, setting_value)
               VALUES (?, ?, ?)
               ON CONFLICT(user_email, setting_key) DO UPDATE SET
                   setting_value = excluded.setting_value,
                   updated_at = CURRENT_TIMESTAMP""",
            (user_email, key, json.dumps(value)),
        )

    def get_all(self, user_email: str) -> dict[str, Any]:
        rows = self.db.execute(
            "SELECT setting_key, setting_value FROM user_settings WHERE user_email = ?",
            (user_email,),
        )
        return {r["setting_key"]: json.loads(r["setting_value"]) for r in rows}

    def delete_all(self, user_email: str) -> None:
        self.db.execute_write("DELETE FROM user_settings WHERE user_email = ?", (user_email,))


class EmailRepository:
    """Database operations for processed emails."""

    def __init__(self, db: Database):
        self.db = db

    def upsert(self, record: EmailRecord) -> int:
        return self.db.execute_write(
            """INSERT INTO emails (
                user_email, gmail_id, thread_id, subject, from_header, from_email,
                body_preview, category, classification_reasoning,
                classification_confidence, is_thread, sender_known, draft_id, processed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_email, gmail_id) DO UPDATE SET
                category = excluded.category,
                classification_reasoning = excluded.classification_reasoning,
                classification_confidence = excluded.classification_confidence,
                is_thread = excluded.is_thread,
                sender_known = excluded.sender_known,
                draft_id = excluded.draft_id,
                processed_at = excluded.processed_at""",
            (
                record.user_email,
                record.gmail_id,
                record.thread_id,
                record.subject,
                record.from_header,
                record.from_email.lower().strip(),
                record.body_preview,
                record.category,
                record.classification_reasoning,
                record.classification_confidence,
                int(record.is_thread),
                int(record.sender_known),
                record.draft_id,
                record.processed_at,
            ),
        )

    def get(self, user_email: str, gmail_id: str) -> dict[str, Any] | None:
        return self.db.execute_one(
            "SELECT * FROM emails WHERE user_email = ? AND gmail_id = ?",
            (user_email, gmail_id),
        )

    def processed_ids(self, user_email: str) -> set[str]:
        rows = self.db.execute("SELECT gmail_id FROM emails WHERE user_email = ?", (user_email,))
        return {r["gmail_id"] for r in rows}

    def sender_history(
        self, user_email: str, sender_email: str, limit: int = 50
    ) -> list[dict[str, Any]]:
        """Most recent rows for a sender, newest first."""
        return self.db.execute(
            """SELECT category, processed_at, from_email FROM emails
               WHERE user_email = ? AND from_email = ?
               ORDER BY processed_at DESC, id DESC
               LIMIT ?""",
            (user_email, sender_email, limit),
        )

    def list_for_user(
        self, user_email: str, category: int | None = None, limit: int = 50
    ) -> list[dict[str, Any]]:
        if category is None:
            return self.db.execute(
                """SELECT * FROM emails WHERE user_email = ?
                   ORDER BY processed_at DESC, id DESC LIMIT ?""",
                (user_email, limit),
            )
        return self.db.execute(
            """SELECT * FROM emails WHERE user_email = ? AND category = ?
               ORDER BY processed_at DESC, id DESC LIMIT ?""",
            (user_email, category, limit),
        )


class LLMCallRepository:
    """Database operations for LLM call logging."""

    def __init__(self, db: Database):
        self.db = db

    def log(
        self,
        call_type: str,
        model: str,
        user_email: str | None = None,
        gmail_id: str | None = None,
        prompt: str | None = None,
        response_text: str | None = None,
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
        total_tokens: int = 0,
        latency_ms: int = 0,
        error: str | None = None,
    ) -> int:
        """Log an LLM API call with all metadata."""
        return self.db.execute_write(
            """INSERT INTO llm_calls (
                user_email, gmail_id, call_type, model, prompt, response_text,
                prompt_tokens, completion_tokens, total_tokens, latency_ms, error
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user_email,
                gmail_id,
                call_type,
                model,
                prompt,
                response_text,
                prompt_tokens,
                completion_tokens,
                total_tokens,
                latency_ms,
                error,
            ),
        )

    def get_by_gmail_id(self, gmail_id: str) -> list[dict[str, Any]]:
        return self.db.execute(
            "SELECT * FROM llm_calls WHERE gmail_id = ? ORDER BY created_at, id",
            (gmail_id,),
        )

    def get_recent(self, limit: int = 100) -> list[dict[str, Any]]:
        return self.db.execute(
            "SELECT * FROM llm_calls ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        )

    def get_stats(self, user_email: str | None = None) -> dict[str, Any]:
        """Get token usage statistics."""
        where = "WHERE user_email = ?" if user_email else ""
        params = (user_email,) if user_email else ()
        result = self.db.execute_one(
            f"""SELECT
                COUNT(*) as call_count,
                SUM(prompt_tokens) as total_prompt_tokens,
                SUM(completion_tokens) as total_completion_tokens,
                SUM(total_tokens) as total_tokens,
                AVG(latency_ms) as avg_latency_ms
               FROM llm_calls {where}""",
            params,
        )
        return result or {}
