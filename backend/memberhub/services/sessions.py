"""Server-side sessions: the encrypted store and the cookie-facing manager."""
from __future__ import annotations

import json
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from fastapi import Request, Response
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from memberhub.core.security import SecretManager, SessionSigner
from memberhub.db.base import utcnow
from memberhub.db.session import get_session
from memberhub.models.session import SessionRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(slots=True)
class SessionState:
    authenticated: bool
    username: str
    expires_at: datetime


@dataclass(slots=True)
class SessionContext:
    """Session attached to the current request; empty when the client has none."""

    session_id: str | None = None
    state: SessionState | None = None

    @property
    def username(self) -> str | None:
        return self.state.username if self.state else None


class SessionStore(Protocol):
    async def load(self, session_id: str) -> SessionState | None:
        ...

    async def save(self, session_id: str, state: SessionState) -> None:
        ...

    async def delete(self, session_id: str) -> None:
        ...


class SqlSessionStore:
    """Session store backed by the ``sessions`` table with Fernet-encrypted payloads."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        secret_manager: SecretManager,
        clock: Clock = utcnow,
    ) -> None:
        self._factory = session_factory
        self._secrets = secret_manager
        self._clock = clock

    async def load(self, session_id: str) -> SessionState | None:
        async with get_session(self._factory) as db:
            record = await db.get(SessionRecord, session_id)
            if record is None:
                return None
            expires_at = _as_utc(record.expires_at)
            if expires_at <= self._clock():
                await db.delete(record)
                await db.commit()
                return None
            payload = record.payload

        try:
            data = json.loads(self._secrets.decrypt(payload))
        except ValueError:
            logger.warning("Discarding session with unreadable payload")
            await self.delete(session_id)
            return None
        return SessionState(
            authenticated=bool(data.get("authenticated")),
            username=str(data.get("username") or ""),
            expires_at=expires_at,
        )

    async def save(self, session_id: str, state: SessionState) -> None:
        payload = self._secrets.encrypt(
            json.dumps({"authenticated": state.authenticated, "username": state.username})
        )
        async with get_session(self._factory) as db:
            await db.merge(SessionRecord(id=session_id, payload=payload, expires_at=state.expires_at))
            await db.commit()

    async def delete(self, session_id: str) -> None:
        async with get_session(self._factory) as db:
            await db.execute(delete(SessionRecord).where(SessionRecord.id == session_id))
            await db.commit()

    async def purge_expired(self) -> int:
        """Delete every session whose expiry has passed and return how many went."""

        async with get_session(self._factory) as db:
            result = await db.execute(select(SessionRecord.id).where(SessionRecord.expires_at <= self._clock()))
            expired = list(result.scalars().all())
            if expired:
                await db.execute(delete(SessionRecord).where(SessionRecord.id.in_(expired)))
                await db.commit()
        return len(expired)


class SessionManager:
    """Create, read, and destroy the authenticated session of a browser client."""

    def __init__(
        self,
        store: SessionStore,
        signer: SessionSigner,
        *,
        cookie_name: str,
        max_age_seconds: int,
        secure: bool = False,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self._signer = signer
        self._secure = secure
        self._clock = clock

    async def load(self, request: Request) -> SessionContext:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return SessionContext()
        try:
            payload = self._signer.loads(token, max_age=self.max_age_seconds)
        except ValueError:
            logger.debug("Ignoring session cookie with a bad signature")
            return SessionContext()

        session_id = payload.get("sid")
        if not isinstance(session_id, str) or not session_id:
            return SessionContext()
        state = await self.store.load(session_id)
        if state is None:
            return SessionContext()
        return SessionContext(session_id=session_id, state=state)

    async def create_session(self, context: SessionContext, username: str, response: Response) -> None:
        previous_id = context.session_id
        session_id = secrets.token_urlsafe(32)
        state = SessionState(
            authenticated=True,
            username=username,
            expires_at=self._clock() + timedelta(seconds=self.max_age_seconds),
        )
        await self.store.save(session_id, state)
        if previous_id and previous_id != session_id:
            await self.store.delete(previous_id)

        context.session_id = session_id
        context.state = state
        response.set_cookie(
            key=self.cookie_name,
            value=self._signer.dumps({"sid": session_id}),
            httponly=True,
            secure=self._secure,
            samesite="lax",
            max_age=self.max_age_seconds,
        )

    def is_authenticated(self, context: SessionContext) -> bool:
        state = context.state
        if state is None or not state.authenticated:
            return False
        return state.expires_at > self._clock()

    async def destroy_session(self, context: SessionContext, response: Response) -> None:
        if context.session_id:
            await self.store.delete(context.session_id)
        context.session_id = None
        context.state = None
        response.delete_cookie(self.cookie_name, httponly=True, secure=self._secure, samesite="lax")
