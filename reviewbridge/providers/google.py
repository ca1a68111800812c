# reviewbridge/providers/google.py
from typing import List, Optional

import httpx

from reviewbridge.providers.base import OAuthProvider
from reviewbridge.providers.schemas import (
    GoogleAccountsResponse,
    GoogleLocationsResponse,
    GoogleReview,
    GoogleReviewsResponse,
    ProviderProfile,
    ReviewPage,
    SourceAccount,
    TokenGrant,
)

# reviews.list rejects a larger pageSize
MAX_REVIEWS_PAGE_SIZE = 50


class GoogleProvider(OAuthProvider):
    name = "google"
    source_label = "Google"
    supports_refresh = True

    def is_configured(self) -> bool:
        return bool(self.settings.GOOGLE_CLIENT_ID and self.settings.GOOGLE_CLIENT_SECRET)

    def _client_credentials(self) -> dict:
        return {
            "client_id": self.settings.GOOGLE_CLIENT_ID,
            "client_secret": self.settings.GOOGLE_CLIENT_SECRET.get_secret_value(),
        }

    @staticmethod
    def _bearer(access_token: str) -> dict:
        return {"Authorization": f"Bearer {access_token}"}

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        params = {
            "client_id": self.settings.GOOGLE_CLIENT_ID,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.settings.GOOGLE_SCOPES,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return str(httpx.URL(self.settings.GOOGLE_AUTH_URL, params=params))

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenGrant:
        body = await self.http.post(
            self.settings.GOOGLE_TOKEN_URL,
            data={
                **self._client_credentials(),
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
        )
        return self.parse(TokenGrant, body)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        body = await self.http.post(
            self.settings.GOOGLE_TOKEN_URL,
            data={
                **self._client_credentials(),
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        return self.parse(TokenGrant, body)

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        body = await self.http.get(self.settings.GOOGLE_USERINFO_URL, headers=self._bearer(access_token))
        return self.parse(ProviderProfile, body)

    async def list_sources(self, access_token: str) -> List[SourceAccount]:
        """
        Locations of the first Business Profile account. Source ids are
        `accounts/{a}/locations/{l}`, the form the reviews API expects.
        """
        body = await self.http.get(
            f"{self.settings.GOOGLE_ACCOUNTS_API_URL}/accounts",
            headers=self._bearer(access_token),
        )
        accounts = self.parse(GoogleAccountsResponse, body).accounts
        if not accounts:
            return []

        account_name = accounts[0].name
        body = await self.http.get(
            f"{self.settings.GOOGLE_LOCATIONS_API_URL}/{account_name}/locations",
            headers=self._bearer(access_token),
            params={"readMask": "name,title"},
        )
        locations = self.parse(GoogleLocationsResponse, body).locations
        return [
            SourceAccount(id=f"{account_name}/{loc.name}", name=loc.title)
            for loc in locations
        ]

    async def list_reviews(
        self,
        access_token: str,
        source_id: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> ReviewPage:
        params = {}
        if limit:
            params["pageSize"] = str(min(limit, MAX_REVIEWS_PAGE_SIZE))
        if cursor:
            params["pageToken"] = cursor

        body = await self.http.get(
            f"{self.settings.GOOGLE_REVIEWS_API_URL}/{source_id}/reviews",
            headers=self._bearer(access_token),
            params=params,
        )
        envelope = self.parse(GoogleReviewsResponse, body)
        reviews, invalid = self.parse_reviews(envelope.reviews, GoogleReview)
        return ReviewPage(reviews=reviews, next_cursor=envelope.nextPageToken, invalid=invalid)
