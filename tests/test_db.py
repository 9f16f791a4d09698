"""Tests for database repositories."""

from __future__ import annotations

import sqlite3

import pytest

from tests.conftest import USER_EMAIL
from zeno.db.models import EmailRecord, EmailRepository, SettingsRepository


@pytest.fixture
def email_repo(db):
    return EmailRepository(db)


class TestSchema:
    def test_initialize_is_idempotent(self, db):
        db.initialize_schema()
        tables = {
            r["name"] for r in db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        assert {"users", "user_settings", "emails", "llm_calls", "action_queue"} <= tables


class TestUserRepository:
    def test_create_and_get(self, user_repo):
        user_repo.create("a@x.com", "A", "at", "rt")
        user = user_repo.get_by_email("a@x.com")
        assert user.display_name == "A"
        assert user.labels_created is False
        assert user.gmail_label_ids == {}
        assert user.is_subscribed is False

    def test_missing_user(self, user_repo):
        assert user_repo.get_by_email("nobody@x.com") is None

    def test_duplicate_email_rejected(self, user_repo):
        user_repo.create("a@x.com")
        with pytest.raises(sqlite3.IntegrityError):
            user_repo.create("a@x.com")

    def test_set_labels(self, user_repo):
        user_repo.create("a@x.com")
        user_repo.set_labels("a@x.com", {"Action Required": "Label_1"})
        user = user_repo.get_by_email("a@x.com")
        assert user.labels_created is True
        assert user.gmail_label_ids == {"Action Required": "Label_1"}

    def test_processable_users(self, user_repo):
        user_repo.create("ready@x.com", refresh_token="rt")
        user_repo.set_labels("ready@x.com", {})
        user_repo.create("nolabels@x.com", refresh_token="rt")
        user_repo.create("notoken@x.com")
        user_repo.set_labels("notoken@x.com", {})

        assert [u.email for u in user_repo.get_processable_users()] == ["ready@x.com"]

    def test_draft_count_and_subscription(self, user_repo):
        user_repo.create("a@x.com")
        user_repo.increment_draft_count("a@x.com")
        user_repo.increment_draft_count("a@x.com")
        user_repo.set_subscription_status("a@x.com", "active")
        user = user_repo.get_by_email("a@x.com")
        assert user.drafts_created_count == 2
        assert user.is_subscribed is True

    def test_update_access_token(self, user_repo):
        user_repo.create("a@x.com", access_token="old")
        user_repo.update_access_token("a@x.com", "new")
        assert user_repo.get_by_email("a@x.com").access_token == "new"


class TestSettingsRepository:
    def test_json_values(self, db, user):
        repo = SettingsRepository(db)
        repo.set(USER_EMAIL, "temperature", 0.3)
        repo.set(USER_EMAIL, "categories", {"1": {"name": "Respond"}})
        assert repo.get(USER_EMAIL, "temperature") == 0.3
        assert repo.get_all(USER_EMAIL)["categories"] == {"1": {"name": "Respond"}}

    def test_upsert(self, db, user):
        repo = SettingsRepository(db)
        repo.set(USER_EMAIL, "signature", "A")
        repo.set(USER_EMAIL, "signature", "B")
        assert repo.get(USER_EMAIL, "signature") == "B"

    def test_missing_key(self, db, user):
        assert SettingsRepository(db).get(USER_EMAIL, "nope") is None

    def test_delete_all(self, db, user):
        repo = SettingsRepository(db)
        repo.set(USER_EMAIL, "signature", "A")
        repo.delete_all(USER_EMAIL)
        assert repo.get_all(USER_EMAIL) == {}


class TestEmailRepository:
    def _record(self, gmail_id, category=1, from_email="Alice@X.com", processed_at=None):
        record = EmailRecord(
            user_email=USER_EMAIL,
            gmail_id=gmail_id,
            category=category,
            from_email=from_email,
            classification_reasoning="because",
            classification_confidence=0.9,
            is_thread=True,
        )
        if processed_at:
            record.processed_at = processed_at
        return record

    def test_upsert_and_get(self, email_repo, user):
        email_repo.upsert(self._record("m1"))
        row = email_repo.get(USER_EMAIL, "m1")
        assert row["category"] == 1
        assert row["from_email"] == "alice@x.com"
        assert row["is_thread"] == 1

    def test_upsert_updates_existing_row(self, email_repo, user):
        email_repo.upsert(self._record("m1", category=1))
        email_repo.upsert(self._record("m1", category=4))
        assert email_repo.get(USER_EMAIL, "m1")["category"] == 4
        assert email_repo.processed_ids(USER_EMAIL) == {"m1"}

    def test_sender_history_newest_first(self, email_repo, user):
        email_repo.upsert(self._record("m1", 2, processed_at="2024-06-01T10:00:00+00:00"))
        email_repo.upsert(self._record("m2", 3, processed_at="2024-06-03T10:00:00+00:00"))
        email_repo.upsert(self._record("m3", 4, from_email="bob@x.com"))

        rows = email_repo.sender_history(USER_EMAIL, "alice@x.com")

        assert [r["category"] for r in rows] == [3, 2]

    def test_list_for_user_by_category(self, email_repo, user):
        email_repo.upsert(self._record("m1", 1))
        email_repo.upsert(self._record("m2", 2))
        assert [r["gmail_id"] for r in email_repo.list_for_user(USER_EMAIL, category=2)] == ["m2"]
        assert len(email_repo.list_for_user(USER_EMAIL)) == 2

    def test_requires_existing_user(self, email_repo):
        with pytest.raises(sqlite3.IntegrityError):
            email_repo.upsert(self._record("m1"))
