"""Application level exceptions."""

from __future__ import annotations

__all__ = [
    "AppError",
    "NotFoundError",
    "PersistenceError",
    "DerivationError",
    "InvalidMessageError",
    "UploadError",
    "PayloadTooLargeError",
    "UploadReadError",
    "ensure_found",
]


class AppError(Exception):
    """Base class for application specific errors."""


class NotFoundError(AppError):
    """Raised when a record could not be located."""


class PersistenceError(AppError):
    """Raised when a JSON document cannot be written."""


class DerivationError(AppError):
    """Raised inside the media pipeline when an encoder step fails."""


class InvalidMessageError(AppError):
    """Raised when a websocket message cannot be parsed or validated."""


class UploadError(AppError):
    """Base class for upload failures."""


class PayloadTooLargeError(UploadError):
    """Raised when an uploaded file exceeds the configured limit."""


class UploadReadError(UploadError):
    """Raised when streaming the upload fails."""


def ensure_found(record: object | None, *, entity: str, identifier: object) -> object:
    """Ensure a record exists, otherwise raise :class:`NotFoundError`."""

    if record is None:
        raise NotFoundError(f"{entity} '{identifier}' not found")
    return record
