from datetime import datetime, timezone

import httpx
import pytest

from reviewbridge.errors import UnsupportedProvider
from reviewbridge.infrastructure.http_client import ExternalAPIClient, ProviderAPIError
from reviewbridge.providers.facebook import FacebookProvider
from reviewbridge.providers.google import GoogleProvider
from reviewbridge.providers.registry import get_provider
from reviewbridge.providers.schemas import FacebookReview, GoogleReview, TokenGrant

from conftest import FB_GRAPH, GOOGLE_TOKEN_URL, GOOGLE_USERINFO_URL


@pytest.mark.parametrize("raw, expected", [("FIVE", 5), ("ONE", 1), ("3", 3), (4, 4), ("STAR_RATING_UNSPECIFIED", None)])
def test_google_star_rating(raw, expected):
    review = GoogleReview.model_validate({"reviewId": "r", "starRating": raw})
    assert review.starRating == expected


def test_facebook_compact_offset_is_parsed():
    review = FacebookReview.model_validate(
        {"id": "r", "reviewer": {"name": "Ann"}, "created_time": "2024-03-01T12:00:00+0200"}
    )
    assert review.to_source_review().created_at == datetime(2024, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def test_facebook_reviewer_avatar_variants():
    nested = FacebookReview.model_validate(
        {"id": "r", "reviewer": {"name": "Ann", "picture": {"data": {"url": "https://img.test/a"}}}}
    )
    flat = FacebookReview.model_validate(
        {"id": "r", "reviewer": {"name": "Ann", "profile_picture": "https://img.test/b"}}
    )
    assert nested.to_source_review().reviewer_avatar == "https://img.test/a"
    assert flat.to_source_review().reviewer_avatar == "https://img.test/b"


def test_token_grant_requires_access_token():
    with pytest.raises(ProviderAPIError):
        GoogleProvider.parse(TokenGrant, {"access_token": ""})


def test_registry(settings):
    assert isinstance(get_provider("google", settings), GoogleProvider)
    assert isinstance(get_provider("facebook", settings), FacebookProvider)
    with pytest.raises(UnsupportedProvider):
        get_provider("myspace", settings)


def test_is_configured(settings):
    assert GoogleProvider(settings).is_configured()
    unconfigured = settings.model_copy(update={"FACEBOOK_APP_SECRET": None})
    assert not FacebookProvider(unconfigured).is_configured()


def test_facebook_authorization_url(settings):
    url = httpx.URL(FacebookProvider(settings).authorization_url("st4te", settings.callback_url("facebook")))

    assert url.host == "www.facebook.com"
    assert url.path == "/v18.0/dialog/oauth"
    assert url.params["client_id"] == "fb-app"
    assert url.params["state"] == "st4te"
    assert url.params["redirect_uri"] == "https://api.example.test/platforms/facebook/callback"
    assert "fb-secret" not in str(url)


def test_google_authorization_url(settings):
    url = httpx.URL(GoogleProvider(settings).authorization_url("st4te", settings.callback_url("google")))

    assert url.host == "accounts.google.com"
    assert url.params["response_type"] == "code"
    assert url.params["access_type"] == "offline"
    assert url.params["state"] == "st4te"
    assert url.params["scope"] == settings.GOOGLE_SCOPES
    assert "google-secret" not in str(url)


def test_google_naive_timestamp_is_read_as_utc():
    review = GoogleReview.model_validate(
        {"reviewId": "r", "reviewer": {"displayName": "Kim"}, "starRating": "FIVE", "createTime": "2024-02-10T08:30:00"}
    )
    assert review.to_source_review().created_at == datetime(2024, 2, 10, 8, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_http_client_wraps_timeouts():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client = ExternalAPIClient(timeout=1, transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderAPIError) as exc_info:
        await client.get("https://graph.facebook.com/v18.0/me", params={"access_token": "SECRET"})

    assert "ConnectTimeout" in str(exc_info.value)
    assert "SECRET" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_client_rejects_error_status_and_non_json():
    def handler(request):
        if request.url.path == "/broken":
            return httpx.Response(200, text="<html>oops</html>")
        return httpx.Response(401, json={"error": "nope"})

    client = ExternalAPIClient(transport=httpx.MockTransport(handler))

    with pytest.raises(ProviderAPIError) as exc_info:
        await client.get("https://api.test/denied?access_token=SECRET")
    assert exc_info.value.status_code == 401
    assert exc_info.value.body == {"error": "nope"}
    assert "SECRET" not in str(exc_info.value)

    with pytest.raises(ProviderAPIError):
        await client.get("https://api.test/broken")


@pytest.mark.asyncio
async def test_google_malformed_profile_is_provider_error(settings, provider_api):
    provider_api.add("GET", GOOGLE_USERINFO_URL, (200, {"email": "a@x.com"}))
    with pytest.raises(ProviderAPIError):
        await GoogleProvider(settings, transport=provider_api.transport).fetch_profile("T1")


@pytest.mark.asyncio
async def test_google_refresh_access_token(settings, provider_api):
    provider_api.add("POST", GOOGLE_TOKEN_URL, (200, {"access_token": "NEW", "expires_in": 3599}))

    grant = await GoogleProvider(settings, transport=provider_api.transport).refresh_access_token("R1")

    assert grant.access_token == "NEW"
    assert grant.expires_in == 3599
    form = httpx.QueryParams(provider_api.calls[0].content.decode())
    assert form["grant_type"] == "refresh_token"
    assert form["refresh_token"] == "R1"


@pytest.mark.asyncio
async def test_facebook_does_not_refresh(settings, provider_api):
    with pytest.raises(ProviderAPIError):
        await FacebookProvider(settings, transport=provider_api.transport).refresh_access_token("x")
    assert provider_api.calls == []


@pytest.mark.asyncio
async def test_facebook_numeric_profile_id_is_coerced(settings, provider_api):
    provider_api.add("GET", f"{FB_GRAPH}/me", (200, {"id": 1234567890, "name": "Owner"}))

    profile = await FacebookProvider(settings, transport=provider_api.transport).fetch_profile("U1")

    assert profile.id == "1234567890"
    assert provider_api.calls[0].url.params["fields"] == "id,name,email"
