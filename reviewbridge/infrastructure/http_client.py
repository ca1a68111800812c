# reviewbridge/infrastructure/http_client.py
from typing import Any, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)


class ProviderAPIError(Exception):
    """
    Outbound provider call failed: transport error, timeout, non-2xx, or a body that is not JSON.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ExternalAPIClient:
    def __init__(self, timeout: float = 20, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def post(self, url, headers=None, data=None, json=None, params=None):
        async with self._client() as client:
            try:
                r = await client.post(url, headers=headers, data=data, json=json, params=params)
            except httpx.HTTPError as e:
                raise ProviderAPIError(f"POST {url} failed: {e.__class__.__name__}") from e
        return self._json(r)

    async def get(self, url, headers=None, params=None):
        async with self._client() as client:
            try:
                r = await client.get(url, headers=headers, params=params)
            except httpx.HTTPError as e:
                raise ProviderAPIError(f"GET {url} failed: {e.__class__.__name__}") from e
        return self._json(r)

    @staticmethod
    def _json(response: httpx.Response):
        # query strings may carry tokens, so only the path is reported
        target = f"{response.request.method} {str(response.request.url).split('?')[0]}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if response.status_code >= 400:
            raise ProviderAPIError(
                f"{target} returned {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        if body is None:
            raise ProviderAPIError(f"{target} returned a non-JSON body", status_code=response.status_code)
        return body
