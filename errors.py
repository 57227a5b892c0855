# errors.py
from fastapi import Request
from fastapi.responses import JSONResponse


class WritifyError(Exception):
    """
    Base class for errors that map straight to an HTTP response.

    `error` is the short text the frontend shows, `message` is the optional
    extra detail (e.g. the database error text on a 500).
    """
    status_code = 500
    default_error = "Server error"

    def __init__(self, error: str | None = None, message: str | None = None):
        self.error = error or self.default_error
        self.message = message
        super().__init__(self.error)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class ValidationError(WritifyError):
    status_code = 400
    default_error = "Invalid input"


class AuthenticationError(WritifyError):
    status_code = 401
    default_error = "Not authenticated"


class AuthorizationError(WritifyError):
    status_code = 403
    default_error = "Access denied"


class NotFoundError(WritifyError):
    status_code = 404
    default_error = "Not found"


class ConflictError(WritifyError):
    # Double-accept answered 404 in the deployed frontend contract
    status_code = 404
    default_error = "Request not found or already assigned"


class ServerError(WritifyError):
    status_code = 500
    default_error = "Server error"


async def writify_error_handler(request: Request, exc: WritifyError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
