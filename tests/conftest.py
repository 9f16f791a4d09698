"""Shared fixtures: temp sqlite database, config, users, fake LLM replies."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from zeno.categories import CategoryConfig, CategorySet
from zeno.config import AppConfig, DatabaseConfig
from zeno.db.connection import Database
from zeno.db.models import UserRepository
from zeno.gmail.models import Email

USER_EMAIL = "user@example.com"


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(sqlite_path=tmp_path / "test.db"),
        environment="development",
    )


@pytest.fixture
def db(config) -> Database:
    db = Database(config.database)
    db.initialize_schema()
    return db


@pytest.fixture
def user_repo(db) -> UserRepository:
    return UserRepository(db)


@pytest.fixture
def user(user_repo):
    """A user with labels set up and a refresh token on file."""
    user_repo.create(USER_EMAIL, "Test User", "access-token", "refresh-token")
    user_repo.set_labels(
        USER_EMAIL,
        {
            "Action Required": "Label_1",
            "FYI Only": "Label_2",
            "Marketing & Spam": "Label_8",
        },
    )
    return user_repo.get_by_email(USER_EMAIL)


@pytest.fixture
def two_categories() -> CategorySet:
    """Minimal set: Respond plus the required catch-all."""
    return CategorySet(
        [
            CategoryConfig(id=1, name="Respond", color="#fb4c2f", required=True, order=1),
            CategoryConfig(id=2, name="Other", color="#4a86e8", required=True, order=2),
        ]
    )


def make_email(**overrides) -> Email:
    data = {
        "id": "msg_1",
        "thread_id": "thread_1",
        "subject": "Quarterly numbers",
        "from_": "Alice <alice@example.com>",
        "from_email": "alice@example.com",
        "to": USER_EMAIL,
        "date": "Mon, 3 Jun 2024 10:00:00 +0000",
        "body_preview": "Can you send the numbers?",
        "body": "Hi,\n\nCan you send me the Q2 numbers by Friday?\n\nThanks",
    }
    data.update(overrides)
    return Email(**data)


def llm_response(content):
    """Shape of a litellm completion response."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage.prompt_tokens = 120
    response.usage.completion_tokens = 30
    response.usage.total_tokens = 150
    return response
