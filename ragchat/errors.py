"""
Error taxonomy for the ingestion and chat pipelines.
Each error carries the HTTP status it maps to at the API boundary.
"""
from typing import Any, Dict, Optional


class RagChatError(Exception):
    """Base class for errors surfaced to API callers as {"error": ...}."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class ValidationError(RagChatError):
    """Malformed request: missing owner, empty file, unsupported type."""

    status_code = 400


class ExtractionError(RagChatError):
    """The source file could not be decoded or parsed."""

    status_code = 400


class EmbeddingError(RagChatError):
    """Bad input, missing credential, upstream failure or dimension mismatch."""


class StorageError(RagChatError):
    """Primary store read/write failure."""


class CompletionError(RagChatError):
    """The completion service could not be reached or rejected the request."""


class SecondaryStoreWarning(UserWarning):
    """Non-fatal secondary index failure, collected rather than raised."""

    def __init__(self, record_id: str, cause: BaseException):
        super().__init__(f"Secondary index write failed for {record_id}: {cause}")
        self.record_id = record_id
        self.cause = cause
