"""
Error taxonomy for the semantic search subsystem.

- EmptyInputError: nothing to embed (a skip, not a failure)
- ProviderError: the embedding provider call failed (transient)
- StorageUnavailableError: vector capability/table missing or unreachable
- InvalidQueryError: malformed search request (caller-facing)
"""


class SemanticSearchError(Exception):
    """Base class for all errors raised by this package."""


class EmptyInputError(SemanticSearchError, ValueError):
    """Raised when text is empty after trimming."""


class ProviderError(SemanticSearchError):
    """Raised when the embedding provider call fails or times out."""


class StorageUnavailableError(SemanticSearchError):
    """
    Raised when the vector store cannot serve a request.

    Attributes:
        reason: "not_initialized" when the embedding table does not exist,
            "unavailable" for connection failures, timeouts and other
            database errors.
    """

    NOT_INITIALIZED = "not_initialized"
    UNAVAILABLE = "unavailable"

    def __init__(self, message: str, reason: str = UNAVAILABLE) -> None:
        super().__init__(message)
        self.reason = reason

    @property
    def not_initialized(self) -> bool:
        return self.reason == self.NOT_INITIALIZED


class InvalidQueryError(SemanticSearchError, ValueError):
    """Raised for search requests that cannot be served as given."""
