# reviewbridge/providers/base.py
from typing import List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from reviewbridge.config import Settings
from reviewbridge.infrastructure.http_client import ExternalAPIClient, ProviderAPIError
from reviewbridge.providers.schemas import (
    PageGrant,
    ProviderProfile,
    ReviewPage,
    SourceAccount,
    SourceReview,
    TokenGrant,
)

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class OAuthProvider:
    """
    Base for an OAuth provider that exposes reviewable sources.

    Every network method raises ProviderAPIError, including for
    payloads that do not match the expected schema.
    """

    name: str = ""
    source_label: str = ""
    supports_pages: bool = False
    supports_refresh: bool = False

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.http = ExternalAPIClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS, transport=transport)

    def is_configured(self) -> bool:
        raise NotImplementedError

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        raise NotImplementedError

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenGrant:
        raise NotImplementedError

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        raise NotImplementedError

    async def fetch_page_grant(self, access_token: str) -> Optional[PageGrant]:
        return None

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        raise ProviderAPIError(f"{self.name} does not support token refresh")

    async def list_sources(self, access_token: str) -> List[SourceAccount]:
        raise NotImplementedError

    async def list_reviews(
        self,
        access_token: str,
        source_id: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> ReviewPage:
        raise NotImplementedError

    @staticmethod
    def parse(model: Type[M], body) -> M:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise ProviderAPIError(f"malformed {model.__name__} payload: {e.error_count()} error(s)", body=None) from e

    def parse_reviews(self, raw_reviews: List[dict], model: Type[BaseModel]) -> tuple[List[SourceReview], int]:
        """
        Validate reviews one by one; a malformed entry is counted, not fatal.
        """
        reviews, invalid = [], 0
        for raw in raw_reviews:
            try:
                reviews.append(model.model_validate(raw).to_source_review())
            except ValidationError as e:
                invalid += 1
                logger.info("provider_review_invalid", provider=self.name, errors=e.error_count())
        return reviews, invalid
