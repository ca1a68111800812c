# reviewbridge/services/linking.py
import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from reviewbridge.config import Settings
from reviewbridge.errors import (
    InvalidState,
    MissingCode,
    PersistFailed,
    ProfileFetchFailed,
    ProviderError,
    TokenExchangeFailed,
)
from reviewbridge.infrastructure.http_client import ProviderAPIError
from reviewbridge.infrastructure.linked_accounts_repo import LinkedAccountRepository
from reviewbridge.providers.base import OAuthProvider
from reviewbridge.schemas.platform_schema import LinkResult
from reviewbridge.timeutil import utcnow
from reviewbridge.UAA import utils

logger = structlog.get_logger(__name__)


def compute_expiry(expires_in: Optional[int], default_days: int, now: Optional[datetime] = None) -> datetime:
    """
    Absolute expiry for a fresh token. Providers that report no lifetime get
    `default_days`, which is a refresh hint rather than a real expiry.
    """
    now = now or utcnow()
    if expires_in and expires_in > 0:
        return now + timedelta(seconds=int(expires_in))
    return now + timedelta(days=default_days)


class LinkingService:
    def __init__(self, session: AsyncSession, settings: Settings, provider: OAuthProvider):
        self.session = session
        self.settings = settings
        self.provider = provider
        self.repo = LinkedAccountRepository(session)

    async def start(self, user_id: uuid.UUID) -> str:
        state = await utils.create_oauth_state(str(user_id), self.provider.name)
        logger.info("link_started", provider=self.provider.name, user_id=str(user_id))
        return self.provider.authorization_url(state, self.settings.callback_url(self.provider.name))

    async def _check_state(self, state: Optional[str], user_id: uuid.UUID) -> None:
        name = self.provider.name
        if not state:
            raise InvalidState("missing state", provider=name)
        payload = await utils.pop_oauth_state(state)
        if not payload:
            raise InvalidState("unknown or expired state", provider=name)
        if payload.get("provider") != name or payload.get("user_id") != str(user_id):
            raise InvalidState("state issued for a different provider or user", provider=name)

    async def complete_link(
        self,
        code: Optional[str],
        error: Optional[str],
        state: Optional[str],
        user_id: uuid.UUID,
        redirect_uri: Optional[str] = None,
    ) -> LinkResult:
        """
        Finish an OAuth round trip and store the credential set for (user, provider).

        `user_id` must come from the authenticated session. Nothing is written
        unless the code exchange and the profile fetch both succeed.
        """
        provider = self.provider
        name = provider.name
        log = logger.bind(provider=name, user_id=str(user_id))

        if error:
            raise ProviderError(f"provider redirected with error={error}", provider=name)
        if not code:
            raise MissingCode("no authorization code in callback", provider=name)

        await self._check_state(state, user_id)
        redirect_uri = redirect_uri or self.settings.callback_url(name)

        try:
            grant = await provider.exchange_code(code, redirect_uri)
        except ProviderAPIError as e:
            raise TokenExchangeFailed(str(e), provider=name) from e

        try:
            profile = await provider.fetch_profile(grant.access_token)
        except ProviderAPIError as e:
            raise ProfileFetchFailed(str(e), provider=name) from e

        page = None
        if provider.supports_pages:
            page = await provider.fetch_page_grant(grant.access_token)

        expires_at = compute_expiry(grant.expires_in, self.settings.DEFAULT_TOKEN_LIFETIME_DAYS)

        try:
            account = await self.repo.upsert(
                user_id=user_id,
                provider=name,
                provider_user_id=profile.id,
                access_token_enc=utils.encrypt_token(grant.access_token),
                refresh_token_enc=utils.encrypt_token(grant.refresh_token),
                page_id=page.page_id if page else None,
                page_token_enc=utils.encrypt_token(page.access_token if page else None),
                expires_at=expires_at,
                user_email=profile.email,
                user_name=profile.name,
                scope=grant.scope,
            )
        except SQLAlchemyError as e:
            raise PersistFailed(f"linked account upsert failed: {e.__class__.__name__}", provider=name) from e

        log.info(
            "link_completed",
            provider_user_id=profile.id,
            page_id=page.page_id if page else None,
            expires_at=expires_at.isoformat(),
        )
        return LinkResult(provider=name, name=profile.name, email=profile.email, account=account)

    async def disconnect(self, user_id: uuid.UUID) -> bool:
        removed = await self.repo.delete_by_user_and_provider(user_id, self.provider.name)
        logger.info("link_removed", provider=self.provider.name, user_id=str(user_id), removed=removed)
        return removed
