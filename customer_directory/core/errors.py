from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


ERROR_PREFIX = "customer_directory"

class CustomerDirectoryError(HTTPException):
    """Base class for every error surfaced by the API.

    Carries a machine-readable ``code`` next to the human message so clients
    can branch on the failure without parsing text. Rendered by
    :func:`directory_error_handler` as ``{"code", "message", "data"}``.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int,
        headers: dict[str, str] | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code
        self.message = message
        self.data = data or {}

    def to_body(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "data": {"status": self.status_code, **self.data},
        }

class UnauthorizedError(CustomerDirectoryError):
    """Raised when no valid credentials accompany a protected request."""

    def __init__(self, code: str = "rest_not_logged_in", message: str = "You are not currently logged in.") -> None:
        super().__init__(
            code,
            message,
            status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Basic"},
        )

class ForbiddenError(CustomerDirectoryError):
    """Raised when the authenticated principal lacks a required capability."""

    def __init__(
        self,
        code: str = f"{ERROR_PREFIX}_rest_cannot_view",
        message: str = "Sorry, you cannot list resources.",
    ) -> None:
        super().__init__(code, message, status.HTTP_403_FORBIDDEN)

class BadRequestError(CustomerDirectoryError):
    """Raised when a request parameter falls outside its declared schema."""

    def __init__(self, message: str, params: dict[str, str] | None = None) -> None:
        super().__init__(
            "rest_invalid_param",
            message,
            status.HTTP_400_BAD_REQUEST,
            data={"params": params or {}},
        )

class InternalError(CustomerDirectoryError):
    """Opaque failure of the user store."""

    def __init__(self, message: str = "A database error occurred while reading customers.") -> None:
        super().__init__(
            f"{ERROR_PREFIX}_rest_internal_error",
            message,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

class QueryCancelledError(Exception):
    """Raised by the store when the caller aborted the request mid-query."""


def invalid_params(errors: list[Any]) -> BadRequestError:
    """Builds a BadRequestError from pydantic/FastAPI error entries."""
    params: dict[str, str] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "body")]
        name = loc[-1] if loc else "request"
        params.setdefault(name, err.get("msg", "Invalid value"))
    return BadRequestError(f"Invalid parameter(s): {', '.join(params)}", params=params)


async def directory_error_handler(request: Request, exc: CustomerDirectoryError) -> JSONResponse:
    """Renders a CustomerDirectoryError as a structured JSON body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Maps FastAPI parameter validation failures onto BadRequestError."""
    return await directory_error_handler(request, invalid_params(list(exc.errors())))
