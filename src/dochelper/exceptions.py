"""
Custom exception hierarchy for the document helper.

All exceptions inherit from DHError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class DHError(Exception):
    """Base exception for all document helper errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(DHError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Unknown STORE_BACKEND
        - SQLite path that cannot be created
    """

    pass


class ValidationError(DHError):
    """Raised when a document fails validation before a write.

    Context should include:
        - collection: The target collection
        - field: The field that failed validation
    """

    pass


class QueryShapeError(DHError):
    """Raised when a query descriptor cannot be translated.

    Context should include:
        - part: Which part of the descriptor was malformed (where, order_by, limit)
        - value: The offending value
    """

    pass


class StoreError(DHError):
    """Raised when the underlying document store fails.

    Context should include:
        - collection: The collection being accessed
        - doc_id: The document id, if any
        - operation: The store operation (get, set, update, delete, query)
    """

    pass


class DocumentNotFoundError(StoreError):
    """Raised by a store when updating a document that does not exist."""

    pass
