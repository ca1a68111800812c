# reviewbridge/providers/registry.py
from typing import Dict, Optional, Type

import httpx

from reviewbridge.config import Settings
from reviewbridge.errors import UnsupportedProvider
from reviewbridge.providers.base import OAuthProvider
from reviewbridge.providers.facebook import FacebookProvider
from reviewbridge.providers.google import GoogleProvider

PROVIDERS: Dict[str, Type[OAuthProvider]] = {
    GoogleProvider.name: GoogleProvider,
    FacebookProvider.name: FacebookProvider,
}


def get_provider(
    name: str,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> OAuthProvider:
    try:
        provider_cls = PROVIDERS[name]
    except KeyError:
        raise UnsupportedProvider(f"unknown provider {name!r}", provider=name)
    return provider_cls(settings, transport=transport)
