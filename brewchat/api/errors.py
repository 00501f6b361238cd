"""Rendering of domain errors as HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from brewchat.core.errors import BrewChatError, InfrastructureError, ValidationError

logger = logging.getLogger(__name__)


async def brewchat_error_handler(request: Request, exc: BrewChatError) -> JSONResponse:
    """Render any BrewChatError as ``{errorKind, message, ...}``."""
    level = logging.ERROR if isinstance(exc, InfrastructureError) else logging.INFO
    logger.log(
        level,
        f"[API] {request.method} {request.url.path} -> {exc.status_code} "
        f"{exc.error_kind}: {exc.message}",
    )
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies use the same error shape as domain errors."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    return await brewchat_error_handler(request, ValidationError(f"Invalid request: {problems}"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BrewChatError, brewchat_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
