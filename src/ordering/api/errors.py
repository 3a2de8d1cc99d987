"""Map ordering errors onto HTTP responses.

Protean's own handlers cover ``ValidationError`` (400) and
``ObjectNotFoundError`` (404). Provider messages are not echoed back to
callers; they are already in the logs.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import AuthenticationFailed, InvariantViolation, UpstreamProviderError
from ordering.payment.reconciliation import AUTHENTICATION_FAILED_MESSAGE

logger = structlog.get_logger(__name__)

ERROR_RESPONSES: dict[type, tuple[int, str]] = {
    AuthenticationFailed: (400, AUTHENTICATION_FAILED_MESSAGE),
    UpstreamProviderError: (502, "Upstream provider unavailable, please retry"),
    InvariantViolation: (500, "Internal error"),
}


async def ordering_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code, detail = ERROR_RESPONSES[type(exc)]
    logger.warning(
        "Request failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content={"detail": detail, "error_type": type(exc).__name__})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    for exc_type in ERROR_RESPONSES:
        app.add_exception_handler(exc_type, ordering_error_handler)
