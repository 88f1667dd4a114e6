# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exceptions raised by the snapshot storage client."""


class StorageError(Exception):
    """Base exception for snapshot storage errors."""


class ConfigurationError(StorageError):
    """Credentials or endpoint are missing or malformed."""


class NotFoundError(StorageError):
    """The remote object does not exist (HTTP 404).

    Attributes:
        bucket: Bucket that was queried.
        key: Object key that was not found.
    """

    def __init__(self, bucket: str, key: str) -> None:
        super().__init__(f"object not found: {bucket}/{key}")
        self.bucket = bucket
        self.key = key


class TransportError(StorageError):
    """Non-success HTTP status or network failure.

    Attributes:
        status_code: HTTP status, or None when no response was received.
        body: Response body text for diagnostics (may be empty).
    """

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class LocalIOError(StorageError):
    """Local filesystem failure (open, create, stat, copy)."""
