# reviewbridge/routers/reviews_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from reviewbridge.config import Settings, get_settings
from reviewbridge.dependencies.auth import get_current_user
from reviewbridge.dependencies.db import get_session_dep
from reviewbridge.dependencies.providers import get_provider_dep
from reviewbridge.errors import IntegrationError
from reviewbridge.providers.base import OAuthProvider
from reviewbridge.routers.http_errors import to_http_exception
from reviewbridge.schemas.review_schema import (
    ImportOptions,
    ImportRequest,
    ImportResponse,
    PreviewResult,
    TestimonialRead,
)
from reviewbridge.services.review_import import ReviewImportService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/{provider}", response_model=PreviewResult)
async def preview_reviews(
    source_id: str = Query(..., min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    cursor: Optional[str] = None,
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    client: OAuthProvider = Depends(get_provider_dep),
    session: AsyncSession = Depends(get_session_dep),
    settings: Settings = Depends(get_settings),
    current_user=Depends(get_current_user),
):
    svc = ReviewImportService(session, settings, client)
    options = ImportOptions(limit=limit, cursor=cursor, min_rating=min_rating)
    try:
        return await svc.preview_reviews(current_user.id, source_id, options)
    except IntegrationError as e:
        raise to_http_exception(e)


@router.post("/{provider}/import", response_model=ImportResponse)
async def import_reviews(
    payload: ImportRequest,
    client: OAuthProvider = Depends(get_provider_dep),
    session: AsyncSession = Depends(get_session_dep),
    settings: Settings = Depends(get_settings),
    current_user=Depends(get_current_user),
):
    svc = ReviewImportService(session, settings, client)
    options = ImportOptions(**payload.model_dump(exclude={"source_id"}))
    try:
        result = await svc.import_reviews(current_user.id, payload.source_id, options)
    except IntegrationError as e:
        raise to_http_exception(e)
    return ImportResponse(
        imported=result.imported,
        skipped=result.skipped,
        filtered=result.filtered,
        next_cursor=result.next_cursor,
        testimonials=[TestimonialRead.model_validate(t) for t in result.testimonials],
    )
