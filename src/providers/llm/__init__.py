"""LLM provider adapters.

OpenAILLMProvider is the only implementation of ILLMProvider.  It backs the
vision captioning tier and talks to any OpenAI-compatible endpoint.
"""

from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
