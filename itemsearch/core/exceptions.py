from http import HTTPStatus
from typing import Any


class ItemSearchError(Exception):
    """Base exception for the item similarity library.

    ``status_code`` is a hint for whatever boundary turns errors into responses.
    """

    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ParseError(ItemSearchError):
    """Raised when textual vector input is malformed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, HTTPStatus.BAD_REQUEST, details)


class InvalidVectorError(ParseError):
    """Raised when a query vector cannot be used for a search."""


class InvalidArgumentError(ItemSearchError):
    """Raised when a search parameter is out of range or missing."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, HTTPStatus.BAD_REQUEST, details)


class NotFoundError(ItemSearchError):
    """Raised when an item to update no longer exists."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, HTTPStatus.NOT_FOUND, details)


class MappingError(ItemSearchError):
    """Raised when a result row is missing a column or has the wrong shape."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, HTTPStatus.INTERNAL_SERVER_ERROR, details)


class StorageError(ItemSearchError):
    """Raised when the database fails to execute a statement."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, HTTPStatus.SERVICE_UNAVAILABLE, details)
