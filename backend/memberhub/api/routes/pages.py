"""Page endpoints: signup, login, logout, and the members gallery."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import Settings
from memberhub.core.dependencies import (
    get_app_settings,
    get_db,
    get_password_hasher,
    get_session_context,
    get_session_manager,
    get_templates,
)
from memberhub.core.security import PasswordHasher
from memberhub.schemas.auth import FormValidationError, LoginForm, SignupForm, validate_form
from memberhub.services.gallery import pick_random_image
from memberhub.services.sessions import SessionContext, SessionManager
from memberhub.services.users import UserExistsError, authenticate_user, create_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])


def render(
    templates: Jinja2Templates,
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    return templates.TemplateResponse(request, name, context or {}, status_code=status_code)


async def read_form(request: Request, fields: Iterable[str]) -> dict[str, Any]:
    """Collect the named form fields, leaving out the ones the client did not send."""

    form = await request.form()
    data: dict[str, Any] = {}
    for name in fields:
        value = form.get(name)
        if value is not None:
            data[name] = value
    return data


@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    context: SessionContext = Depends(get_session_context),
    manager: SessionManager = Depends(get_session_manager),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    if manager.is_authenticated(context):
        return render(templates, request, "logged_in.html", {"username": context.username})
    return render(templates, request, "logged_out.html")


@router.get("/signup", response_class=HTMLResponse)
async def signup_form(request: Request, templates: Jinja2Templates = Depends(get_templates)) -> Response:
    return render(templates, request, "signup.html")


@router.post("/signupSubmit", response_class=HTMLResponse)
async def signup_submit(
    request: Request,
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    context: SessionContext = Depends(get_session_context),
    manager: SessionManager = Depends(get_session_manager),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    data = await read_form(request, ("username", "password", "email"))
    try:
        form = validate_form(SignupForm, data)
    except FormValidationError as exc:
        logger.info("Signup rejected: %s", exc.message)
        return render(
            templates, request, "validation_error.html", {"error": exc.message}, status.HTTP_400_BAD_REQUEST
        )

    try:
        user = await create_user(db, form, hasher)
        await db.commit()
    except UserExistsError as exc:
        logger.info("Signup rejected: %s", exc)
        return render(templates, request, "validation_error.html", {"error": str(exc)}, status.HTTP_409_CONFLICT)

    response = RedirectResponse(url="/members", status_code=status.HTTP_302_FOUND)
    await manager.create_session(context, user.username, response)
    return response


@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request, templates: Jinja2Templates = Depends(get_templates)) -> Response:
    return render(templates, request, "login.html")


@router.post("/loggingIn", response_class=HTMLResponse)
async def logging_in(
    request: Request,
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    context: SessionContext = Depends(get_session_context),
    manager: SessionManager = Depends(get_session_manager),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    data = await read_form(request, ("email", "password"))
    try:
        form = validate_form(LoginForm, data)
    except FormValidationError as exc:
        logger.info("Login rejected: %s", exc.message)
        return render(
            templates, request, "invalid_login.html", {"error": exc.message}, status.HTTP_401_UNAUTHORIZED
        )

    user = await authenticate_user(db, form.email, form.password, hasher)
    if user is None:
        logger.info("Login failed: invalid email/password combination")
        return render(templates, request, "invalid_login.html", {}, status.HTTP_401_UNAUTHORIZED)

    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    await manager.create_session(context, user.username, response)
    logger.info("User %s logged in", user.username)
    return response


@router.get("/logout")
async def logout(
    context: SessionContext = Depends(get_session_context),
    manager: SessionManager = Depends(get_session_manager),
) -> Response:
    username = context.username
    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    await manager.destroy_session(context, response)
    if username:
        logger.info("User %s logged out", username)
    return response


@router.get("/members", response_class=HTMLResponse)
async def members(
    request: Request,
    context: SessionContext = Depends(get_session_context),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_app_settings),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    if not manager.is_authenticated(context):
        return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)

    image = await pick_random_image(settings.public_dir)
    return render(templates, request, "members.html", {"username": context.username, "image_url": image})
