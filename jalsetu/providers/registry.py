"""Lookup table of configured chat providers."""

import logging
from typing import Dict, Optional

from ..core.config import Settings, get_settings
from .base import ChatProvider
from .edenai import EdenAIProvider
from .gemini import GeminiProvider
from .perplexity import PerplexityProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Builds one adapter per supported provider from settings."""

    def __init__(self, settings: Optional[Settings] = None, providers: Optional[Dict[str, ChatProvider]] = None):
        self.settings = settings or get_settings()
        if providers is None:
            timeout = self.settings.provider_timeout_seconds
            providers = {
                "gemini": GeminiProvider(
                    self.settings.gemini_api_key,
                    model=self.settings.gemini_model,
                    timeout=timeout,
                ),
                "perplexity": PerplexityProvider(
                    self.settings.perplexity_api_key,
                    model=self.settings.perplexity_model,
                    timeout=timeout,
                ),
                "edenai": EdenAIProvider(
                    self.settings.eden_ai_api_key,
                    engine=self.settings.eden_ai_provider,
                    timeout=timeout,
                ),
            }
        self._providers = providers

        for name, provider in self._providers.items():
            if not provider.enabled:
                logger.warning(f"{provider.display_name} API key not set; /api/chat/{name} will answer from the knowledge base")

    @property
    def names(self):
        return list(self._providers)

    @property
    def default(self) -> ChatProvider:
        return self.get(self.settings.chat_provider)

    def get(self, provider: str) -> ChatProvider:
        try:
            return self._providers[provider]
        except KeyError:
            raise KeyError(f"Unknown provider: {provider}") from None

    async def aclose(self) -> None:
        for provider in self._providers.values():
            await provider.aclose()
