"""Pipeline error definitions.

All errors surfaced to callers are defined here with the HTTP status a
transport layer should map them to.

AccessDenied is deliberately opaque: a remote policy deny and a local
security-rule rejection produce the same code and message.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes.

    Format: E_CATEGORY_NAME
    """

    # Authorization errors (403)
    E_ACCESS_DENIED = "E_ACCESS_DENIED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"

    # Server errors
    E_UPSTREAM_UNAVAILABLE = "E_UPSTREAM_UNAVAILABLE"  # 503
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ErrorCode, int] = {
    ErrorCode.E_ACCESS_DENIED: 403,
    ErrorCode.E_NOT_FOUND: 404,
    ErrorCode.E_INVALID_REQUEST: 400,
    ErrorCode.E_UPSTREAM_UNAVAILABLE: 503,
    ErrorCode.E_INTERNAL: 500,
}

ACCESS_DENIED_MESSAGE = "Access denied"


class WardenError(Exception):
    """Base exception for pipeline errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(WardenError):
    """No record matches the requested identifier."""

    def __init__(self, message: str = "Record not found"):
        super().__init__(ErrorCode.E_NOT_FOUND, message)


class AccessDeniedError(WardenError):
    """The requester may not see the record.

    The message never says which gate rejected.
    """

    def __init__(self, message: str = ACCESS_DENIED_MESSAGE):
        super().__init__(ErrorCode.E_ACCESS_DENIED, message)


class UpstreamUnavailableError(WardenError):
    """The search backend failed on a call the invocation cannot continue without."""

    def __init__(self, message: str = "Search backend unavailable"):
        super().__init__(ErrorCode.E_UPSTREAM_UNAVAILABLE, message)


class InvalidRequestError(WardenError):
    """Invalid request error."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(ErrorCode.E_INVALID_REQUEST, message)
