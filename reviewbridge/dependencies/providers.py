# reviewbridge/dependencies/providers.py
from typing import Optional

import httpx
from fastapi import Depends, HTTPException

from reviewbridge.config import Settings, get_settings
from reviewbridge.models.linked_account import Provider
from reviewbridge.providers.base import OAuthProvider
from reviewbridge.providers.registry import get_provider


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    # overridden in tests with httpx.MockTransport
    return None


def get_provider_dep(
    provider: Provider,
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> OAuthProvider:
    return get_provider(provider.value, settings, transport=transport)


def get_configured_provider(provider: OAuthProvider = Depends(get_provider_dep)) -> OAuthProvider:
    if not provider.is_configured():
        raise HTTPException(status_code=503, detail=f"{provider.source_label} OAuth not configured")
    return provider
