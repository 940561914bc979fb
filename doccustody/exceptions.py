from fastapi import HTTPException


class CustodyError(HTTPException):
    """Base for custody failures; rendered by the HTTPException handler."""

    status_code = 500
    code = "custody_error"

    def __init__(self, message: str, details=None):
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": message, "details": details},
        )
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class ValidationError(CustodyError):
    status_code = 400
    code = "validation_error"


class AuthorizationError(CustodyError):
    status_code = 403
    code = "not_authorized"


class NotFound(CustodyError):
    status_code = 404
    code = "not_found"


class Conflict(CustodyError):
    status_code = 409
    code = "conflict"


class PersistenceError(CustodyError):
    """Transaction or connection failure. The only error callers may retry."""

    status_code = 503
    code = "persistence_error"
