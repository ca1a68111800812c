# reviewbridge/errors.py
"""
Failure taxonomy for account linking and review import.

Every error is terminal for the invocation that raised it. `code` is stable
and safe to hand to clients; `detail` is internal and only goes to the logs.
"""
from typing import Optional


class IntegrationError(Exception):
    code = "integration_failed"
    public_message = "Integration request failed"

    def __init__(self, detail: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(detail or self.public_message)
        self.detail = detail
        self.provider = provider


class LinkError(IntegrationError):
    code = "link_failed"
    public_message = "Failed to connect account"


class ReviewImportError(IntegrationError):
    code = "import_failed"
    public_message = "Failed to import reviews"


class UnsupportedProvider(IntegrationError):
    code = "unsupported_provider"
    public_message = "Unsupported provider"


class ProviderError(LinkError):
    code = "provider_error"


class MissingCode(LinkError):
    code = "missing_code"


class InvalidState(LinkError):
    code = "invalid_state"


class TokenExchangeFailed(LinkError):
    code = "token_exchange_failed"


class ProfileFetchFailed(LinkError):
    code = "profile_fetch_failed"


class NotLinked(ReviewImportError):
    code = "not_linked"
    public_message = "Account is not connected"


class FetchFailed(ReviewImportError):
    code = "fetch_failed"
    public_message = "Failed to fetch reviews from provider"


class PersistFailed(LinkError, ReviewImportError):
    code = "persist_failed"
    public_message = "Failed to save data"
