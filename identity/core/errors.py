# identity/core/errors.py
"""
Error taxonomy for authentication and account management.

Every `AuthError` carries the HTTP status it maps to and a message that is
safe to show to clients. Internal detail (which check failed, store errors)
goes to the log only.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AuthError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Bad request"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class ValidationError(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class DuplicateAccount(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "User already exists"


class EmailRequiredForSignup(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Email is required for sign up"


class AccountLinkConflict(AuthError):
    status_code = status.HTTP_409_CONFLICT
    message = "Account cannot be linked"


class Unauthorized(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class Forbidden(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Forbidden"


class NotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class ProviderFailure(AuthError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Identity provider login failed"


class MalformedCredential(ValueError):
    """Stored password credential is not in `salt:key` hex form."""


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same `{message}` shape as every other error."""
    logger.info("Rejected malformed body on %s %s", request.method, request.url.path)
    if request.url.path.endswith("/login"):
        error = InvalidCredentials()
    else:
        error = ValidationError()
    return JSONResponse(status_code=error.status_code, content={"message": error.message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render domain errors as `{message}` JSON and hide everything else."""
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
