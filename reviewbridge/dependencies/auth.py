# reviewbridge/dependencies/auth.py
import uuid
from typing import Optional

import structlog
from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlmodel.ext.asyncio.session import AsyncSession

from reviewbridge.UAA.utils import decode_token, is_access_jti_blacklisted
from reviewbridge.UAA.repository import UserRepository
from reviewbridge.UAA.services import AuthenticationError, UserService
from reviewbridge.dependencies.db import get_session_dep

logger = structlog.get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

async def get_current_user(token: str = Depends(oauth2_scheme), session: AsyncSession = Depends(get_session_dep)):
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token")
    if payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token type")
    jti = payload.get("jti")
    if jti and await is_access_jti_blacklisted(jti):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token revoked")
    try:
        user_id = uuid.UUID(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token subject")
    repo = UserRepository(session)
    user = await repo.get_by_id(user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="user not found")
    return user

async def get_session_user_id(refresh_token: Optional[str] = Cookie(None)) -> Optional[uuid.UUID]:
    """
    User id from the HttpOnly session cookie, None when absent or invalid.
    OAuth callbacks are top-level browser navigations and carry no bearer header.
    """
    if not refresh_token:
        return None
    try:
        sub = await UserService(repo=None, session=None).resolve_session(refresh_token)
        return uuid.UUID(sub)
    except (AuthenticationError, ValueError) as e:
        logger.info("session_cookie_rejected", reason=str(e))
        return None
