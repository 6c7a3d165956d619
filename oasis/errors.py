"""
Error taxonomy and JSON error responses
Every error reaches the client as {"message": str}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class ConflictError(AppError):
    # Duplicate registration / enrollment is reported as a plain 400
    status_code = 400
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Access denied. Authentication required."


class TokenMalformed(AuthenticationError):
    default_message = "Access denied. Invalid token."


class TokenExpired(AuthenticationError):
    default_message = "Access denied. Token expired."


class TokenInvalidSignature(AuthenticationError):
    default_message = "Access denied. Invalid token signature."


class AccountInactive(AuthenticationError):
    default_message = "Access denied. Account is inactive."


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Access denied."


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class InternalError(AppError):
    status_code = 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI):
    """Map every failure to the {"message": ...} body with its status code"""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            return error_response(exc.status_code, "Internal server error")
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return error_response(exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return error_response(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error")
