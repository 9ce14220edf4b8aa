"""Perplexity adapter over its OpenAI-compatible chat completions API."""

import logging
from typing import List, Optional, Sequence, Tuple

import httpx
from langchain_core.messages import BaseMessage
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from .base import ChatProvider, ProviderCallError, openai_style_messages

logger = logging.getLogger(__name__)

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"

COMPLETION_PARAMS = {
    "temperature": 0.2,
    "max_tokens": 500,
    "top_p": 0.9,
    "frequency_penalty": 0.5,
    "presence_penalty": 0.1,
}


class PerplexityProvider(ChatProvider):
    """Chat adapter for Perplexity's online models.

    The system prompt is sent with every request. Citations returned by the
    API are passed through as sources.
    """

    name = "perplexity"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "llama-3.1-sonar-small-128k-online",
        client: Optional[AsyncOpenAI] = None,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(api_key)
        self.model = model
        self._owns_client = client is None
        if client is None and api_key:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=PERPLEXITY_BASE_URL,
                timeout=timeout,
                max_retries=0,
                http_client=http_client,
            )
        self.client = client

    async def _complete(
        self,
        system_prompt: Optional[str],
        history: Sequence[BaseMessage],
        message: str,
    ) -> Tuple[str, List[str]]:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=openai_style_messages(system_prompt, history, message),
                stream=False,
                **COMPLETION_PARAMS,
            )
        except APIStatusError as e:
            raise ProviderCallError(str(e), status_code=e.status_code) from e
        except APIConnectionError as e:
            raise ProviderCallError(f"{type(e).__name__}: {e}", transport_error=True) from e

        if not completion.choices:
            return "", []

        text = completion.choices[0].message.content or ""
        citations = getattr(completion, "citations", None) or []
        return text, [str(citation) for citation in citations]

    async def aclose(self) -> None:
        if self._owns_client and self.client is not None:
            await self.client.close()
