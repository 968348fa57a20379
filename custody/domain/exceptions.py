from __future__ import annotations


class BusinessValidationError(Exception):
    """Raised when input violates a domain rule unrelated to access control."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CustodyError(Exception):
    """Base class for rejected access-control and custody operations.

    Every rejection leaves registry and store state untouched. `code` is a stable,
    machine-readable identifier used in HTTP responses, logs and metrics.
    """

    code = "custody_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(CustodyError):
    """Caller lacks the required role (not the owner, or not an authorized provider)."""

    code = "unauthorized"


class Forbidden(CustodyError):
    """Caller is authorized in general but is not the custodian of the record."""

    code = "forbidden"


class NotFound(CustodyError):
    """Referenced record id does not exist."""

    code = "not_found"


class InvalidTarget(CustodyError):
    """Transfer target is not currently authorized."""

    code = "invalid_target"
