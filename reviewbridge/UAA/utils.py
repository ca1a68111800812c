# reviewbridge/UAA/utils.py
import json
import secrets
import time
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

import structlog
from cryptography.fernet import Fernet, InvalidToken
from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import get_settings
from ..infrastructure import redis_cache

logger = structlog.get_logger(__name__)

settings = get_settings()

if settings.OAUTH_TOKEN_KEY:
    OAUTH_TOKEN_KEY = settings.OAUTH_TOKEN_KEY.get_secret_value()
else:
    # dev fallback (not for production), stored tokens become unreadable after restart
    OAUTH_TOKEN_KEY = Fernet.generate_key().decode()
    logger.warning("oauth_token_key_generated", environment=settings.ENVIRONMENT)

# clients
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
redis_client = redis_cache.redis_client
fernet = Fernet(OAUTH_TOKEN_KEY.encode())


# --- Password utilities ---
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError as e:
        logger.warning("password_verify_failed", error=str(e))
        return False


def assert_password_policy(password: str) -> None:
    if len(password) < 8:
        raise ValueError("password must be at least 8 characters")
    if not any(c.isdigit() for c in password):
        raise ValueError("password must include a digit")
    if not any(c.islower() for c in password):
        raise ValueError("password must include a lowercase letter")
    if not any(c.isupper() for c in password):
        raise ValueError("password must include an uppercase letter")


# --- JWT helpers ---
def _now_ts() -> int:
    return int(time.time())


def _secret() -> str:
    return settings.SECRET_KEY.get_secret_value()


def _create_token(subject: str, token_type: str, expires_delta: timedelta) -> Dict[str, Any]:
    jti = str(uuid.uuid4())
    issued_at = _now_ts()
    expire = issued_at + int(expires_delta.total_seconds())
    payload = {"sub": subject, "exp": expire, "jti": jti, "type": token_type, "iat": issued_at}
    token = jwt.encode(payload, _secret(), algorithm=settings.ALGORITHM)
    logger.debug("create_token", sub=subject, jti=jti, type=token_type, exp=payload["exp"])
    return {"token": token, "jti": jti, "exp": payload["exp"]}


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> Dict[str, Any]:
    return _create_token(subject, "access", expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(subject: str, expires_delta: Optional[timedelta] = None) -> Dict[str, Any]:
    return _create_token(subject, "refresh", expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, _secret(), algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning("token_decode_failed", error=str(e))
        raise


# --- Redis-based blacklists and refresh management ---
async def blacklist_access_jti(jti: str, expires_at_ts: int) -> None:
    ttl = max(0, expires_at_ts - _now_ts())
    if ttl <= 0:
        return
    await redis_client.set(f"bl:{jti}", "1", ex=ttl)
    logger.info("access_jti_blacklisted", jti=jti, ttl=ttl)


async def is_access_jti_blacklisted(jti: str) -> bool:
    return await redis_client.exists(f"bl:{jti}") == 1


async def store_refresh_jti(jti: str, user_id: str, expires_at_ts: int) -> None:
    ttl = max(0, expires_at_ts - _now_ts())
    if ttl <= 0:
        raise ValueError("refresh token already expired")
    await redis_client.set(f"rt:{jti}", user_id, ex=ttl)
    await redis_client.sadd(f"rts:{user_id}", jti)
    await redis_client.expire(f"rts:{user_id}", ttl)
    logger.debug("store_refresh_jti", jti=jti, user_id=user_id, ttl=ttl)


async def revoke_refresh_jti(jti: str) -> None:
    user_id = await redis_client.get(f"rt:{jti}")
    await redis_client.delete(f"rt:{jti}")
    if user_id:
        await redis_client.srem(f"rts:{user_id}", jti)
    logger.info("refresh_jti_revoked", jti=jti, user_id=user_id)


async def is_refresh_valid(jti: str) -> bool:
    return await redis_client.exists(f"rt:{jti}") == 1


async def revoke_all_refresh_for_user(user_id: str) -> None:
    set_key = f"rts:{user_id}"
    jtis = await redis_client.smembers(set_key) or set()
    for j in jtis:
        await redis_client.delete(f"rt:{j}")
    await redis_client.delete(set_key)
    logger.info("revoke_all_refresh_for_user", user_id=user_id, revoked_count=len(jtis))


# --- OAuth token encryption & state ---
def encrypt_token(plaintext: Optional[str]) -> Optional[str]:
    if plaintext is None:
        return None
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: Optional[str]) -> Optional[str]:
    if not ciphertext:
        return None
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.warning("oauth_token_decrypt_failed")
        return None


# OAuth state helpers. The state only correlates a callback with the
# connect request that issued it; the acting user always comes from the session.
OAUTH_STATE_TTL = 300


async def create_oauth_state(user_id: str, provider: str) -> str:
    state = secrets.token_urlsafe(32)
    key = f"oauth_state:{state}"
    payload = {"user_id": str(user_id), "provider": provider}
    await redis_client.set(key, json.dumps(payload), ex=OAUTH_STATE_TTL)
    return state


async def pop_oauth_state(state: str) -> Optional[dict]:
    key = f"oauth_state:{state}"
    raw = await redis_client.get(key)
    if not raw:
        return None
    await redis_client.delete(key)
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("oauth_state_corrupt", key=key)
        return None
