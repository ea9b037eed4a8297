"""Error taxonomy for record management.

Gateways raise ``GatewayError``. The managers translate it into one of the
user-facing kinds below, each carrying the gateway's message text; the API
layer maps them onto HTTP status codes in ``main.py``.
"""
from __future__ import annotations


class GatewayError(Exception):
    """Raised by a gateway implementation when a remote call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AdminError(Exception):
    """Base class for errors surfaced to the user."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FetchError(AdminError):
    """A listing call failed; the snapshot keeps its prior data."""

    kind = "fetch_error"
    status_code = 502


class ValidationError(AdminError):
    """A required field is missing or could not be coerced."""

    kind = "validation_error"
    status_code = 422


class UploadError(AdminError):
    """The object-storage upload failed; no record write was attempted."""

    kind = "upload_error"
    status_code = 502


class MutationError(AdminError):
    """An insert, update or delete failed."""

    kind = "mutation_error"
    status_code = 502


class ReferentialIntegrityError(MutationError):
    """A source delete was refused because chunks still reference it."""

    kind = "referential_integrity_error"
    status_code = 409
