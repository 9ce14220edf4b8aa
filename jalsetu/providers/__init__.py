"""Hosted LLM chat adapters."""

from .base import FARMING_SYSTEM_PROMPT, ChatProvider, ProviderErr, ProviderOk, ProviderResult, to_history
from .classifier import ProviderErrorKind, classify_error
from .edenai import EdenAIProvider
from .gemini import GeminiProvider
from .perplexity import PerplexityProvider
from .registry import ProviderRegistry

__all__ = [
    "FARMING_SYSTEM_PROMPT",
    "ChatProvider",
    "ProviderErr",
    "ProviderOk",
    "ProviderResult",
    "to_history",
    "ProviderErrorKind",
    "classify_error",
    "EdenAIProvider",
    "GeminiProvider",
    "PerplexityProvider",
    "ProviderRegistry",
]
