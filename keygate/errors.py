"""
Domain errors raised by the store and the key/user-data operations.

Each error carries the HTTP status and the message the API returns in
its ``{"error": ...}`` body.
"""

from __future__ import annotations


class KeygateError(Exception):
    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidKey(KeygateError):
    status_code = 401
    message = "Invalid Key"


class KeyExpired(KeygateError):
    status_code = 401
    message = "Key Expired"


class KeyAlreadyClaimed(KeygateError):
    status_code = 401
    message = "Key Already Claimed"


class MissingEmail(KeygateError):
    status_code = 400
    message = "No email"


class AdminAuthRequired(KeygateError):
    status_code = 401
    message = "Admin credential required"


class DuplicateKeyError(KeygateError):
    status_code = 409
    message = "Key already exists"


class PayloadTooLarge(KeygateError):
    status_code = 413
    message = "Request body too large"
