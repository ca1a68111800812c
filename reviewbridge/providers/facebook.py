# reviewbridge/providers/facebook.py
from typing import List, Optional

import httpx
import structlog

from reviewbridge.infrastructure.http_client import ProviderAPIError
from reviewbridge.providers.base import OAuthProvider
from reviewbridge.providers.schemas import (
    FacebookPageList,
    FacebookRatingsResponse,
    FacebookReview,
    PageGrant,
    ProviderProfile,
    ReviewPage,
    SourceAccount,
    TokenGrant,
)

logger = structlog.get_logger(__name__)

REVIEW_FIELDS = "id,recommendation_type,review_text,created_time,updated_time,rating,reviewer{name,id,picture}"


class FacebookProvider(OAuthProvider):
    name = "facebook"
    source_label = "Facebook"
    supports_pages = True

    def is_configured(self) -> bool:
        return bool(self.settings.FACEBOOK_APP_ID and self.settings.FACEBOOK_APP_SECRET)

    @property
    def graph_url(self) -> str:
        return self.settings.facebook_graph_url

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        params = {
            "client_id": self.settings.FACEBOOK_APP_ID,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.settings.FACEBOOK_SCOPES,
            "state": state,
        }
        return str(httpx.URL(self.settings.facebook_dialog_url, params=params))

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenGrant:
        body = await self.http.get(
            f"{self.graph_url}/oauth/access_token",
            params={
                "client_id": self.settings.FACEBOOK_APP_ID,
                "client_secret": self.settings.FACEBOOK_APP_SECRET.get_secret_value(),
                "redirect_uri": redirect_uri,
                "code": code,
            },
        )
        return self.parse(TokenGrant, body)

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        body = await self.http.get(
            f"{self.graph_url}/me",
            params={"fields": "id,name,email", "access_token": access_token},
        )
        return self.parse(ProviderProfile, body)

    async def _pages(self, access_token: str, fields: str) -> FacebookPageList:
        body = await self.http.get(
            f"{self.graph_url}/me/accounts",
            params={"fields": fields, "access_token": access_token},
        )
        return self.parse(FacebookPageList, body)

    async def fetch_page_grant(self, access_token: str) -> Optional[PageGrant]:
        """
        Durable token of the first managed page, None when there is no page.
        A failing page list is logged and treated as "no page".
        """
        try:
            pages = await self._pages(access_token, "id,name,access_token")
        except ProviderAPIError as e:
            logger.warning("facebook_page_list_failed", error=str(e), status_code=e.status_code)
            return None
        if not pages.data or not pages.data[0].access_token:
            return None
        first = pages.data[0]
        return PageGrant(page_id=first.id, access_token=first.access_token)

    async def list_sources(self, access_token: str) -> List[SourceAccount]:
        pages = await self._pages(access_token, "id,name,picture")
        return [
            SourceAccount(
                id=page.id,
                name=page.name,
                picture_url=page.picture.data.url if page.picture else None,
            )
            for page in pages.data
        ]

    async def list_reviews(
        self,
        access_token: str,
        source_id: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> ReviewPage:
        params = {"access_token": access_token, "fields": REVIEW_FIELDS}
        if limit:
            params["limit"] = str(limit)
        if cursor:
            params["after"] = cursor

        body = await self.http.get(f"{self.graph_url}/{source_id}/ratings", params=params)
        envelope = self.parse(FacebookRatingsResponse, body)
        reviews, invalid = self.parse_reviews(envelope.data, FacebookReview)

        next_cursor = None
        if envelope.paging and envelope.paging.next:
            next_cursor = envelope.paging.cursors.after
        return ReviewPage(reviews=reviews, next_cursor=next_cursor, invalid=invalid)
