"""
Error taxonomy shared by the store adapters, the HTTP handlers and the CLI.

- ValidationError: required input missing or empty (HTTP 400)
- NotFoundError:   requested event does not exist (HTTP 404)
- StoreError:      the backing store reported a failure (message is passed on)
"""

from __future__ import annotations


class MccEventsError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(MccEventsError):
    pass


class NotFoundError(MccEventsError):
    pass


class StoreError(MccEventsError):
    """
    Raised when the backing store fails.

    `message` is the store's own message and is shown to the caller as-is.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
