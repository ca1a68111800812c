# reviewbridge/routers/auth_router.py
from fastapi import APIRouter, Depends, HTTPException, status, Response, Cookie
from sqlmodel.ext.asyncio.session import AsyncSession
from typing import Optional
import time
import structlog

from ..config import get_settings
from ..dependencies.db import get_session_dep
from ..UAA.repository import UserRepository
from ..UAA.services import UserService, AuthenticationError
from ..UAA.schemas import UserCreate, LoginRequest, Token

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_COOKIE = "refresh_token"


def _set_session_cookie(response: Response, refresh: dict) -> None:
    # the refresh token doubles as the session for OAuth callbacks, so it must survive top-level redirects (SameSite=Lax)
    settings = get_settings()
    cookie_max_age = max(0, refresh["exp"] - int(time.time()))
    response.set_cookie(
        key=SESSION_COOKIE,
        value=refresh["token"],
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        max_age=cookie_max_age,
    )


@router.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, session: AsyncSession = Depends(get_session_dep)):
    repo = UserRepository(session)
    svc = UserService(repo, session)
    try:
        created = await svc.register_user(user_in)
        return {"id": str(created.id), "email": created.email, "username": created.username}
    except ValueError as e:
        logger.info("register_validation_failed", error=str(e), email=user_in.email)
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/login", response_model=Token)
async def login(form_data: LoginRequest, response: Response, session: AsyncSession = Depends(get_session_dep)):
    """
    Expects JSON: {"email": "...", "password": "..."}
    Returns access token in body and sets refresh token as HttpOnly cookie.
    """
    repo = UserRepository(session)
    svc = UserService(repo, session)
    try:
        user = await svc.authenticate_user(form_data.email, form_data.password)
    except AuthenticationError as e:
        # Do not reveal whether email exists
        logger.warning("login_failed", reason=str(e), email=form_data.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    tokens = await svc.issue_tokens(user)
    _set_session_cookie(response, tokens["refresh"])
    access = tokens["access"]
    return {"access_token": access["token"], "token_type": "bearer", "expires_in": access["exp"]}


@router.post("/refresh", response_model=Token)
async def refresh(response: Response, refresh_token: Optional[str] = Cookie(None)):
    if not refresh_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing refresh token")
    try:
        # rotation performed in service
        new = await UserService(repo=None, session=None).refresh_tokens(refresh_token)
    except AuthenticationError as e:
        logger.warning("refresh_failed", reason=str(e))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    _set_session_cookie(response, new["refresh"])
    return {"access_token": new["access"]["token"], "token_type": "bearer", "expires_in": new["access"]["exp"]}


@router.post("/logout")
async def logout(response: Response, access_token: Optional[str] = None, refresh_token: Optional[str] = Cookie(None), revoke_all: bool = False):
    """
    Logout endpoint. Frontend should pass the access token; the refresh token
    cookie is read automatically (if present).
    revoke_all: if True, revoke all refresh tokens for this user (logout everywhere)
    """
    svc = UserService(repo=None, session=None)  # revocation needs no DB session
    await svc.logout(access_token=access_token, refresh_token=refresh_token, revoke_all=revoke_all)
    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}
