# reviewbridge/routers/platforms_router.py
import uuid
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from reviewbridge.config import Settings, get_settings
from reviewbridge.dependencies.auth import get_current_user, get_session_user_id
from reviewbridge.dependencies.db import get_session_dep
from reviewbridge.dependencies.providers import get_configured_provider, get_provider_dep
from reviewbridge.errors import IntegrationError, LinkError
from reviewbridge.infrastructure.linked_accounts_repo import LinkedAccountRepository
from reviewbridge.providers.base import OAuthProvider
from reviewbridge.routers.http_errors import to_http_exception
from reviewbridge.routers.oauth_popup import link_failure_page, link_success_page
from reviewbridge.schemas.platform_schema import ConnectStart, LinkedAccountRead, SourceRead
from reviewbridge.services.linking import LinkingService
from reviewbridge.services.review_import import ReviewImportService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/platforms", tags=["platforms"])


@router.get("", response_model=List[LinkedAccountRead])
async def list_platforms(session: AsyncSession = Depends(get_session_dep), current_user=Depends(get_current_user)):
    accounts = await LinkedAccountRepository(session).list_by_user(current_user.id)
    return [LinkedAccountRead.from_account(a) for a in accounts]


@router.get("/{provider}/connect/start", response_model=ConnectStart)
async def connect_start(
    client: OAuthProvider = Depends(get_configured_provider),
    session: AsyncSession = Depends(get_session_dep),
    settings: Settings = Depends(get_settings),
    current_user=Depends(get_current_user),
):
    svc = LinkingService(session, settings, client)
    return {"auth_url": await svc.start(current_user.id)}


@router.get("/{provider}/callback")
async def connect_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    state: Optional[str] = None,
    client: OAuthProvider = Depends(get_provider_dep),
    session: AsyncSession = Depends(get_session_dep),
    settings: Settings = Depends(get_settings),
    session_user_id: Optional[uuid.UUID] = Depends(get_session_user_id),
):
    """
    Provider redirect target. Always answers with the popup page; failure
    details stay in the logs.
    """
    log = logger.bind(provider=client.name)
    if session_user_id is None:
        log.warning("link_failed", code="unauthenticated")
        return link_failure_page(settings, client.name)

    svc = LinkingService(session, settings, client)
    try:
        result = await svc.complete_link(code=code, error=error, state=state, user_id=session_user_id)
    except LinkError as e:
        log.warning("link_failed", code=e.code, detail=e.detail, user_id=str(session_user_id))
        return link_failure_page(settings, client.name)
    except Exception:
        log.exception("link_failed_unexpected", user_id=str(session_user_id))
        return link_failure_page(settings, client.name)

    return link_success_page(settings, client.name, result.name, result.email)


@router.delete("/{provider}", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    client: OAuthProvider = Depends(get_provider_dep),
    session: AsyncSession = Depends(get_session_dep),
    settings: Settings = Depends(get_settings),
    current_user=Depends(get_current_user),
):
    svc = LinkingService(session, settings, client)
    if not await svc.disconnect(current_user.id):
        raise HTTPException(status_code=404, detail=f"{client.source_label} account not connected")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{provider}/sources", response_model=List[SourceRead])
async def list_sources(
    client: OAuthProvider = Depends(get_provider_dep),
    session: AsyncSession = Depends(get_session_dep),
    settings: Settings = Depends(get_settings),
    current_user=Depends(get_current_user),
):
    svc = ReviewImportService(session, settings, client)
    try:
        sources = await svc.list_sources(current_user.id)
    except IntegrationError as e:
        raise to_http_exception(e)
    return [SourceRead(**s.model_dump()) for s in sources]
