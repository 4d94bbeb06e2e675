"""Utility modules for Groundwire.

- **errors** -- Domain exception hierarchy rooted at GroundwireError; each
  layer raises its own subclass so callers can handle failures granularly.
- **concurrency** -- asyncio semaphore throttling and settle-all fan-out
  used by ingestion (embed+upsert) and retrieval (variant searches).
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **images** -- Pillow decode probes and magic-byte media type detection
  shared by the image tiers and image storage.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocumentReadError,
    GroundwireError,
    IngestionError,
    LLMError,
    ProviderUnavailableError,
    RAGError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import gather_settled, throttled_gather

# -- Image byte helpers ----------------------------------------------------
from src.utils.images import detect_media_type, is_decodable_image, open_rgb

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DocumentReadError",
    "GroundwireError",
    "IngestionError",
    "LLMError",
    "ProviderUnavailableError",
    "RAGError",
    "configure_logging",
    "detect_media_type",
    "gather_settled",
    "get_logger",
    "is_decodable_image",
    "open_rgb",
    "throttled_gather",
]
