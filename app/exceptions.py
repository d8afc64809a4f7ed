# app/exceptions.py
"""
Error taxonomy shared by services and routers.
Every APIException carries an HTTP status and a machine-readable kind;
main.py renders them as {"success": false, "error": kind, "detail": message}.
"""


class APIException(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code = 400
    kind = "api_error"

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(APIException):
    """Missing or malformed required input. The message names the field."""
    status_code = 400
    kind = "validation_error"

    def __init__(self, field: str, message: str = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class AuthError(APIException):
    """Missing, invalid or expired session or code. Message stays generic."""
    status_code = 401
    kind = "auth_error"

    def __init__(self, message: str = "Invalid or expired session"):
        super().__init__(message)


class ConflictError(APIException):
    status_code = 409
    kind = "conflict"


class DependencyError(APIException):
    """
    Storage or email transport failure. The underlying cause is logged by the
    raiser; clients only see the opaque message and the kind.
    """
    status_code = 503
    kind = "dependency_error"

    def __init__(self, message: str = "Upstream dependency failed", dependency: str = "unknown"):
        self.dependency = dependency
        super().__init__(message)
