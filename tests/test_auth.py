import os
import time

import pytest

from reviewbridge.UAA import utils


@pytest.fixture()
def india_timezone():
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "Asia/Kolkata"
    time.tzset()
    yield
    if previous is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = previous
    time.tzset()


def test_access_token_expiry_is_epoch_based(india_timezone):
    token = utils.create_access_token("u1")
    payload = utils.decode_token(token["token"])

    now = time.time()
    assert payload["sub"] == "u1"
    assert payload["type"] == "access"
    assert abs(payload["iat"] - now) < 5
    assert abs(payload["exp"] - (now + utils.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)) < 5


def test_refresh_token_survives_local_offset(india_timezone):
    token = utils.create_refresh_token("u1")
    payload = utils.decode_token(token["token"])

    assert payload["type"] == "refresh"
    assert payload["exp"] == token["exp"]
    assert token["exp"] > time.time() + 29 * 24 * 3600


@pytest.mark.asyncio
async def test_session_cookie_resolves_to_user(fake_redis):
    from reviewbridge.UAA.services import UserService

    refresh = utils.create_refresh_token("user-42")
    await utils.store_refresh_jti(refresh["jti"], "user-42", refresh["exp"])

    assert await UserService(repo=None, session=None).resolve_session(refresh["token"]) == "user-42"
