"""Custom exception hierarchy for groundwire.

All application exceptions inherit from :class:`GroundwireError`, which
carries an optional ``provider_name`` so error handlers can identify which
backing service (e.g. "chromadb", "fastembed", "openai") caused the failure.

The hierarchy is organized by engine concern:

    GroundwireError  (base -- catch-all for any groundwire error)
    +-- ConfigurationError       (startup / missing config)
    +-- DocumentReadError        (unsupported, unreadable or corrupt document)
    +-- IngestionError           (ingestion orchestration)
    +-- RAGError                 (embedding or vector-store failure)
    +-- LLMError                 (captioning model call failure)
    +-- ProviderUnavailableError (external service down / unreachable)

Per-item failures during ingestion and retrieval are caught and logged by
the orchestrators; everything that reaches a caller is one of these types
(or ``FileNotFoundError`` for a missing input file).
"""


class GroundwireError(Exception):
    """Base exception for all groundwire errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backing service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[chromadb] Collection unreachable``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(GroundwireError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class DocumentReadError(GroundwireError):
    """Raised when a document cannot be turned into blocks.

    Covers unsupported file extensions as well as unreadable or corrupt
    files detected at the block-reader boundary.
    """

    def __init__(
        self,
        message: str = "Document could not be read",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionError(GroundwireError):
    """Raised when an ingestion pass fails as a whole."""

    def __init__(
        self,
        message: str = "Ingestion failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class RAGError(GroundwireError):
    """Raised when an embedding or vector-store operation fails."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(GroundwireError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(GroundwireError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
