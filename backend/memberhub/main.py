"""FastAPI application factory."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from memberhub import models  # noqa: F401  (registers tables on Base.metadata)
from memberhub.api import api_router
from memberhub.core.config import Settings, get_settings
from memberhub.core.security import PasswordHasher, SecretManager, SessionSigner
from memberhub.db.base import Base, utcnow
from memberhub.db.session import create_engine, create_session_factory
from memberhub.middleware.request_log import RequestLogMiddleware
from memberhub.services.gallery import GalleryUnavailableError
from memberhub.services.scheduler import create_scheduler, schedule_session_cleanup_job, start_scheduler
from memberhub.services.sessions import Clock, SessionManager, SqlSessionStore

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


def _render_error(request: Request, template: str, status_code: int, message: str | None = None):
    templates: Jinja2Templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        template,
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        # Unmatched methods fall through to the static mount, which answers 405
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return _render_error(request, "404.html", status.HTTP_404_NOT_FOUND)
        return _render_error(request, "error.html", exc.status_code, str(exc.detail))

    @app.exception_handler(GalleryUnavailableError)
    async def _gallery_error(request: Request, exc: GalleryUnavailableError):
        logger.error("Members gallery unavailable on %s: %s", request.url.path, exc.__cause__ or exc)
        return _render_error(
            request, "error.html", status.HTTP_503_SERVICE_UNAVAILABLE, "The image gallery is unavailable."
        )

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _render_error(request, "error.html", status.HTTP_500_INTERNAL_SERVER_ERROR, "Storage failure.")

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _render_error(request, "error.html", status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(settings: Settings | None = None, *, clock: Clock = utcnow) -> FastAPI:
    """Build the application and its collaborators once, sharing them through ``app.state``."""

    settings = settings or get_settings()

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    session_store = SqlSessionStore(session_factory, SecretManager(settings.session_secret), clock=clock)
    session_manager = SessionManager(
        session_store,
        SessionSigner(settings.cookie_secret),
        cookie_name=settings.session_cookie_name,
        max_age_seconds=settings.session_max_age_seconds,
        secure=settings.session_cookie_secure,
        clock=clock,
    )
    scheduler = create_scheduler()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        if settings.session_cleanup_interval_seconds > 0:
            schedule_session_cleanup_job(scheduler, session_store, settings.session_cleanup_interval_seconds)
            start_scheduler(scheduler)

        try:
            yield
        finally:
            if scheduler.running:
                scheduler.shutdown(wait=False)
            await engine.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.session_manager = session_manager
    app.state.password_hasher = PasswordHasher(rounds=settings.password_hash_rounds)
    app.state.templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    app.state.scheduler = scheduler

    app.add_middleware(RequestLogMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router)

    # Routes are matched before the mount, so only unknown paths fall through to the images
    public_dir = Path(settings.public_dir)
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(public_dir)), name="public")
    else:
        logger.warning("Public directory %s does not exist; images will not be served", public_dir)

    return app
