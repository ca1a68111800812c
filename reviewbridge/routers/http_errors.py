# reviewbridge/routers/http_errors.py
import structlog
from fastapi import HTTPException

from reviewbridge.errors import (
    FetchFailed,
    IntegrationError,
    NotLinked,
    PersistFailed,
    UnsupportedProvider,
)

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR = (
    (UnsupportedProvider, 404),
    (NotLinked, 409),
    (FetchFailed, 502),
    (PersistFailed, 500),
)


def to_http_exception(exc: IntegrationError) -> HTTPException:
    """
    Log the internal detail, hand the client only the stable code and a generic message.
    """
    status_code = next((code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    logger.warning(
        "integration_request_failed",
        code=exc.code,
        provider=exc.provider,
        detail=exc.detail,
        status_code=status_code,
    )
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.public_message})
