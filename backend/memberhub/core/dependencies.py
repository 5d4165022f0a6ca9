"""Reusable dependencies for FastAPI routes.

Collaborators are built once in ``create_app`` and stored on ``app.state``;
these functions hand them to the handlers.
"""
from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import Settings
from memberhub.core.security import PasswordHasher
from memberhub.db.session import get_session
from memberhub.services.sessions import SessionContext, SessionManager


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with get_session(request.app.state.session_factory) as session:
        yield session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


async def get_session_context(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionContext:
    return await manager.load(request)
