"""
Error taxonomy for the portal and the handlers that turn it into responses.

Every error carries the HTTP status it maps to. Responses use the
``{"error": "..."}`` body the browser pages expect.
"""
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

LOGGER = logging.getLogger("portal.errors")


class PortalError(Exception):
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(PortalError):
    status_code = 400
    message = "Missing required fields"


class ProfileExistsError(ValidationError):
    message = "Profile already exists"


class AuthenticationError(PortalError):
    status_code = 401
    message = "Invalid token"


class EmailNotVerifiedError(PortalError):
    status_code = 403
    message = "Please verify your email before logging in."


class PendingApprovalError(PortalError):
    status_code = 403
    message = "Your account is pending admin approval."


class UnknownRoleError(PortalError):
    status_code = 403
    message = "Unknown role."


class ProfileNotFoundError(PortalError):
    status_code = 404
    message = "No profile found in database."


class StoreError(PortalError):
    status_code = 500
    message = "Database unavailable"


class IdentityUnavailableError(PortalError):
    status_code = 500
    message = "Identity provider unavailable"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def install_error_handlers(app: FastAPI, templates_dir: Path) -> None:
    error_page = Path(templates_dir) / "error.html"

    @app.exception_handler(PortalError)
    async def portal_error(request: Request, exc: PortalError):
        if exc.status_code >= 500:
            LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and error_page.exists():
            return FileResponse(error_page, status_code=404)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
