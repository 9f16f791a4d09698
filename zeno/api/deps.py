"""Request-scoped access to the objects built once in ``create_app``."""

from __future__ import annotations

from fastapi import HTTPException, Request

from zeno.actions.executor import ActionExecutor
from zeno.actions.repository import ActionRepository
from zeno.config import AppConfig
from zeno.db.connection import Database
from zeno.db.models import User, UserRepository
from zeno.draft.style import WritingStyleAnalyzer
from zeno.gmail.client import GmailService
from zeno.llm.gateway import LLMGateway
from zeno.processing.pipeline import EmailProcessor


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_gmail(request: Request) -> GmailService:
    return request.app.state.gmail


def get_llm(request: Request) -> LLMGateway:
    return request.app.state.llm


def get_processor(request: Request) -> EmailProcessor:
    return request.app.state.processor


def get_executor(request: Request) -> ActionExecutor:
    return request.app.state.executor


def get_style_analyzer(request: Request) -> WritingStyleAnalyzer:
    return request.app.state.style_analyzer


def get_actions(request: Request) -> ActionRepository:
    return ActionRepository(request.app.state.db)


def require_user(db: Database, user_email: str) -> User:
    user = UserRepository(db).get_by_email(user_email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
