# reviewbridge/services/review_import.py
import uuid
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from reviewbridge.config import Settings
from reviewbridge.errors import FetchFailed, NotLinked, PersistFailed
from reviewbridge.infrastructure.http_client import ProviderAPIError
from reviewbridge.infrastructure.linked_accounts_repo import LinkedAccountRepository
from reviewbridge.infrastructure.testimonials_repo import TestimonialRepository
from reviewbridge.models.testimonial import STATUS_PENDING, TYPE_TEXT
from reviewbridge.providers.base import OAuthProvider
from reviewbridge.providers.schemas import ReviewPage, SourceAccount, SourceReview
from reviewbridge.schemas.review_schema import ImportOptions, ImportResult, NormalizedReview, PreviewResult
from reviewbridge.services.linking import compute_expiry
from reviewbridge.timeutil import as_utc, utcnow
from reviewbridge.UAA import utils

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def normalize_rating(review: SourceReview) -> Optional[int]:
    if review.rating:
        return review.rating
    if review.recommendation == "positive":
        return MAX_RATING
    if review.recommendation == "negative":
        return MIN_RATING
    return None


def review_text(review: SourceReview, rating: int) -> str:
    if review.text and review.text.strip():
        return review.text
    if review.recommendation == "positive":
        return "Recommends this business"
    if review.recommendation == "negative":
        return "Doesn't recommend this business"
    return f"Rated this business {rating} out of {MAX_RATING}"


def select_reviews(
    reviews: List[SourceReview],
    min_rating: Optional[int] = None,
    review_ids: Optional[List[str]] = None,
) -> Tuple[List[NormalizedReview], int, int]:
    """
    Normalize, validate and filter one page of reviews.

    Returns (selected, skipped, filtered). `skipped` counts reviews without a
    usable rating, `filtered` those dropped by `min_rating` or `review_ids`.
    The min_rating filter always sees the normalized rating. When a page
    repeats an external id the last occurrence wins.
    """
    wanted = set(review_ids) if review_ids is not None else None
    selected: Dict[str, NormalizedReview] = {}
    skipped = filtered = 0

    for review in reviews:
        rating = normalize_rating(review)
        if rating is None or not MIN_RATING <= rating <= MAX_RATING:
            skipped += 1
            continue
        if min_rating is not None and rating < min_rating:
            filtered += 1
            continue
        if wanted is not None and review.external_id not in wanted:
            filtered += 1
            continue
        selected[review.external_id] = NormalizedReview(
            external_id=review.external_id,
            customer_name=review.reviewer_name,
            customer_avatar=review.reviewer_avatar,
            text=review_text(review, rating),
            rating=rating,
            recommendation=review.recommendation,
            date=review.created_at,
        )
    return list(selected.values()), skipped, filtered


class ReviewImportService:
    def __init__(self, session: AsyncSession, settings: Settings, provider: OAuthProvider):
        self.session = session
        self.settings = settings
        self.provider = provider
        self.accounts = LinkedAccountRepository(session)
        self.testimonials = TestimonialRepository(session)

    async def _access_token(self, user_id: uuid.UUID, source_id: Optional[str] = None) -> str:
        """
        Token for calls on behalf of `user_id`. The stored page token is used
        only for its own page; everything else goes out with the user token.
        """
        name = self.provider.name
        account = await self.accounts.get_by_user_and_provider(user_id, name)
        if not account:
            raise NotLinked(f"no {name} account linked", provider=name)

        if source_id is not None and source_id == account.page_id:
            page_token = utils.decrypt_token(account.page_token_enc)
            if page_token:
                return page_token

        access_token = utils.decrypt_token(account.access_token_enc)
        expired = account.token_expires_at is not None and as_utc(account.token_expires_at) <= utcnow()
        if expired and self.provider.supports_refresh and account.refresh_token_enc:
            return await self._refresh(user_id, utils.decrypt_token(account.refresh_token_enc))

        if not access_token:
            raise NotLinked("stored token cannot be decrypted, account must be relinked", provider=name)
        return access_token

    async def _refresh(self, user_id: uuid.UUID, refresh_token: Optional[str]) -> str:
        name = self.provider.name
        if not refresh_token:
            raise NotLinked("stored refresh token cannot be decrypted", provider=name)
        try:
            grant = await self.provider.refresh_access_token(refresh_token)
        except ProviderAPIError as e:
            raise FetchFailed(f"token refresh failed: {e}", provider=name) from e

        expires_at = compute_expiry(grant.expires_in, self.settings.DEFAULT_TOKEN_LIFETIME_DAYS)
        try:
            await self.accounts.update_access_token(
                user_id, name, utils.encrypt_token(grant.access_token), expires_at
            )
        except SQLAlchemyError as e:
            raise PersistFailed(f"token refresh update failed: {e.__class__.__name__}", provider=name) from e
        logger.info("provider_token_refreshed", provider=name, user_id=str(user_id))
        return grant.access_token

    async def _fetch_page(self, user_id: uuid.UUID, source_id: str, options: ImportOptions) -> ReviewPage:
        token = await self._access_token(user_id, source_id)
        try:
            return await self.provider.list_reviews(token, source_id, limit=options.limit, cursor=options.cursor)
        except ProviderAPIError as e:
            raise FetchFailed(str(e), provider=self.provider.name) from e

    async def list_sources(self, user_id: uuid.UUID) -> List[SourceAccount]:
        token = await self._access_token(user_id)
        try:
            return await self.provider.list_sources(token)
        except ProviderAPIError as e:
            raise FetchFailed(str(e), provider=self.provider.name) from e

    async def preview_reviews(
        self, user_id: uuid.UUID, source_id: str, options: Optional[ImportOptions] = None
    ) -> PreviewResult:
        options = options or ImportOptions()
        page = await self._fetch_page(user_id, source_id, options)
        reviews, skipped, filtered = select_reviews(page.reviews, options.min_rating, options.review_ids)
        return PreviewResult(
            reviews=reviews,
            next_cursor=page.next_cursor,
            skipped=skipped + page.invalid,
            filtered=filtered,
        )

    async def import_reviews(
        self, user_id: uuid.UUID, source_id: str, options: Optional[ImportOptions] = None
    ) -> ImportResult:
        """
        Fetch one page of reviews from `source_id` and upsert them as pending
        text testimonials keyed on the provider's review id.

        The batch write is atomic: rows are validated first, then stored in a
        single statement or not at all (PersistFailed).
        """
        options = options or ImportOptions()
        name = self.provider.name
        page = await self._fetch_page(user_id, source_id, options)
        reviews, skipped, filtered = select_reviews(page.reviews, options.min_rating, options.review_ids)
        skipped += page.invalid

        now = utcnow()
        rows = [
            {
                "id": uuid.uuid4(),
                "user_id": user_id,
                "customer_name": r.customer_name,
                "customer_company": "",
                "testimonial_text": r.text,
                "rating": r.rating,
                "source": self.provider.source_label,
                "status": STATUS_PENDING,
                "type": TYPE_TEXT,
                "customer_avatar": r.customer_avatar,
                "date": r.date,
                "external_id": r.external_id,
                "created_at": now,
                "updated_at": now,
            }
            for r in reviews
        ]

        try:
            stored = await self.testimonials.upsert_many(user_id, self.provider.source_label, rows)
        except SQLAlchemyError as e:
            logger.warning("reviews_import_persist_failed", provider=name, user_id=str(user_id), rows=len(rows))
            raise PersistFailed(f"testimonial upsert failed: {e.__class__.__name__}", provider=name) from e

        logger.info(
            "reviews_imported",
            provider=name,
            user_id=str(user_id),
            source_id=source_id,
            imported=len(stored),
            skipped=skipped,
            filtered=filtered,
        )
        return ImportResult(
            testimonials=stored,
            imported=len(stored),
            skipped=skipped,
            filtered=filtered,
            next_cursor=page.next_cursor,
        )
