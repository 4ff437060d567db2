"""Storefront exceptions.

Each exception carries the HTTP status it maps to at the API boundary.
"""


class StorefrontError(Exception):
    """Base class for expected storefront failures."""

    status_code = 400

    def __init__(self, message: str, **extra):
        self.message = message
        self.extra = extra
        super().__init__(message)


class InvalidRequest(StorefrontError):
    """Request body is malformed or fails validation."""

    status_code = 400


class NotFound(StorefrontError):
    """Requested row does not exist."""

    status_code = 404


class Conflict(StorefrontError):
    """Request conflicts with the current state of a row."""

    status_code = 409


class InvalidTransition(StorefrontError):
    """Order status change not allowed from the current status."""

    status_code = 400


class ShortCodeExhausted(StorefrontError):
    """Could not allocate a unique short code."""

    status_code = 500
