"""
Domain exceptions

Each exception carries the HTTP status and error code the API layer
returns for it (see api/exceptions.py).
"""


class BookkeepingError(Exception):
    """Base exception for bookkeeping operations"""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(BookkeepingError):
    """Raised when input fails a business rule"""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotAuthenticatedError(BookkeepingError):
    """Raised when no valid session is present"""
    status_code = 401
    code = "NOT_AUTHENTICATED"


class InvalidCredentialsError(NotAuthenticatedError):
    """Raised when company code, username or password is wrong"""
    code = "INVALID_CREDENTIALS"


class PermissionDeniedError(BookkeepingError):
    """Raised when the caller's role does not allow the operation"""
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(BookkeepingError):
    """Raised when a record does not exist in the caller's company"""
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(BookkeepingError):
    """Raised when a uniqueness rule is violated"""
    status_code = 409
    code = "CONFLICT"


class UsernameTakenError(ConflictError):
    """Raised when the username already exists"""
    code = "USERNAME_TAKEN"


class EmailTakenError(ConflictError):
    """Raised when the email is already bound to another user"""
    code = "EMAIL_TAKEN"


class UnsupportedOperationError(BookkeepingError):
    """Raised when the active backend does not support the operation"""
    status_code = 400
    code = "UNSUPPORTED"


class CompanyCodeGenerationError(BookkeepingError):
    """Raised when no unused company code could be generated"""
    status_code = 500
    code = "COMPANY_CODE_GENERATION_FAILED"


class BackendError(BookkeepingError):
    """Raised when the auth/data backend fails unexpectedly"""
    status_code = 502
    code = "BACKEND_ERROR"
