"""User service functions for signup and credential checks."""
from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from memberhub.core.security import PasswordHasher
from memberhub.models.user import User
from memberhub.schemas.auth import SignupForm

logger = logging.getLogger(__name__)


class UserExistsError(ValueError):
    """Raised when a username or email is already registered."""


async def get_users_by_email(session: AsyncSession, email: str) -> list[User]:
    result = await session.execute(select(User).where(User.email == email))
    return list(result.scalars().all())


async def find_conflict(session: AsyncSession, username: str, email: str | None) -> str | None:
    """Return the name of the first field already taken by another account."""

    conditions = [User.username == username]
    if email is not None:
        conditions.append(User.email == email)
    result = await session.execute(select(User.username, User.email).where(or_(*conditions)))
    for existing_username, existing_email in result.all():
        if existing_username == username:
            return "username"
        if email is not None and existing_email == email:
            return "email"
    return None


async def create_user(session: AsyncSession, form: SignupForm, hasher: PasswordHasher) -> User:
    conflict = await find_conflict(session, form.username, form.email)
    if conflict:
        raise UserExistsError(f'"{conflict}" is already registered')

    password_hash = await run_in_threadpool(hasher.hash, form.password)
    user = User(username=form.username, email=form.email, password_hash=password_hash)
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise UserExistsError("account is already registered") from exc
    logger.info("Registered user %s", user.username)
    return user


async def authenticate_user(
    session: AsyncSession,
    email: str,
    password: str,
    hasher: PasswordHasher,
) -> User | None:
    """Return the single account matching ``email`` whose hash verifies, else None.

    Zero or several matching rows are treated like a wrong password, and a dummy
    verification keeps the response time close to a real check.
    """

    users = await get_users_by_email(session, email)
    if len(users) != 1:
        await run_in_threadpool(hasher.dummy_verify)
        return None
    user = users[0]
    if not await run_in_threadpool(hasher.verify, password, user.password_hash):
        return None
    return user
