"""
Error types and their JSON rendering.

OIDCError subclasses are protocol errors and render as RFC 6749 bodies
({"error", "error_description"}). RequestError carries an application error
code ("session.not_found", "organization.require_membership", ...) and renders
as {"code", "message"}.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class OIDCError(Exception):
    error = "server_error"
    status_code = 500

    def __init__(self, error_description: str = ""):
        super().__init__(error_description)
        self.error_description = error_description


class InvalidClient(OIDCError):
    error = "invalid_client"
    status_code = 400


class InvalidRedirectUri(OIDCError):
    error = "invalid_redirect_uri"
    status_code = 400


class InvalidTarget(OIDCError):
    error = "invalid_target"
    status_code = 400


class SessionNotFound(OIDCError):
    error = "invalid_request"
    status_code = 400


_REQUEST_ERROR_MESSAGES = {
    "session.not_found": "Session not found.",
    "organization.require_membership": "The user must be a member of the organization.",
    "entity.not_exists_with_id": "The entity with the given id does not exist.",
}


class RequestError(Exception):
    def __init__(self, code: str, status_code: int = 400, message: str | None = None):
        self.code = code
        self.status_code = status_code
        self.message = message or _REQUEST_ERROR_MESSAGES.get(code, code)
        super().__init__(self.message)


def assert_that(condition, error: Exception | str) -> None:
    """Raise error (a RequestError when given a code string) unless condition is truthy."""
    if condition:
        return
    if isinstance(error, str):
        raise RequestError(error)
    raise error


async def oidc_error_handler(request: Request, exc: OIDCError) -> JSONResponse:
    logger.info(
        "OIDC error on %s %s: %s (%s)", request.method, request.url.path, exc.error, exc.error_description
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "error_description": exc.error_description},
    )


async def request_error_handler(request: Request, exc: RequestError) -> JSONResponse:
    log = logger.warning if exc.status_code == 403 else logger.info
    log("Request error on %s %s: code=%s", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message},
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    # Assembled data did not match its declared shape: internal fault, not a user error
    logger.error(
        "Response shape violation on %s %s: %s", request.method, request.url.path, exc, exc_info=exc
    )
    return JSONResponse(
        status_code=500,
        content={"error": "server_error", "error_description": "Internal server error"},
    )
