"""
GameCollectors Backend: API Index and Account Routes
====================================================

What:  GET /api (entry point with links), POST /api/register, POST /api/login
       and GET /api/auth-welcome.
How:   Register, login and auth-welcome are forwarded to the auth service; its status
       code and JSON body are returned unchanged, so clients see the
       auth service's own answer (token, validation message, ...).
Who:   Anonymous clients discover login/register from GET /api; identified
       clients discover the games and webhooks routes.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from gamecollectors.database import get_db_session
from gamecollectors.dependencies import get_optional_user
from gamecollectors.schemas.account import RegisterIn
from gamecollectors.schemas.common import ErrorResponse, MessageResponse
from gamecollectors.services.auth_client import auth_client
from gamecollectors.services.links import build_links, resolve_base_url
from gamecollectors.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Accounts"])


@router.get(
    "",
    response_model=MessageResponse,
    summary="API entry point",
)
async def index(
    request: Request,
    user: Optional[str] = Depends(get_optional_user),
) -> MessageResponse:
    if user is None:
        message = "Welcome to GameCollectors! Register or log in to post and browse games."
    else:
        message = f"Welcome back to GameCollectors, {user}!"
    return MessageResponse(
        message=message,
        status=200,
        links=build_links(resolve_base_url(request), user),
    )


@router.post(
    "/register",
    responses={
        400: {"description": "Password length out of range", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
        503: {"description": "Auth service unavailable", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(
    body: RegisterIn,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    upstream = await user_service.register(db, body.email, body.password)
    content = dict(upstream.body)
    content.setdefault("links", build_links(resolve_base_url(request), None))
    return JSONResponse(status_code=upstream.status_code, content=content)


@router.post(
    "/login",
    responses={503: {"description": "Auth service unavailable", "model": ErrorResponse}},
    summary="Log in through the auth service",
)
async def login(credentials: Dict[str, Any] = Body(...)) -> JSONResponse:
    upstream = await auth_client.login(credentials)
    return JSONResponse(status_code=upstream.status_code, content=upstream.body)


@router.get(
    "/auth-welcome",
    responses={503: {"description": "Auth service unavailable", "model": ErrorResponse}},
    summary="Auth service entry point",
)
async def auth_welcome() -> JSONResponse:
    upstream = await auth_client.welcome()
    return JSONResponse(status_code=upstream.status_code, content=upstream.body)
