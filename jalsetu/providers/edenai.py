"""Eden AI adapter routing chat requests to one upstream engine."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from langchain_core.messages import BaseMessage

from .base import ChatProvider, ProviderCallError, openai_style_messages

logger = logging.getLogger(__name__)

EDEN_AI_CHAT_URL = "https://api.edenai.run/v2/text/chat"


class EdenAIProvider(ChatProvider):
    """Chat adapter for Eden AI's unified text chat endpoint."""

    name = "edenai"

    def __init__(
        self,
        api_key: Optional[str],
        engine: str = "openai",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(api_key)
        self.engine = engine
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def display_name(self) -> str:
        return "Eden AI"

    def build_payload(
        self,
        system_prompt: Optional[str],
        history: Sequence[BaseMessage],
        message: str,
    ) -> Dict[str, Any]:
        return {
            "providers": [self.engine],
            "text": message,
            "chat_history": openai_style_messages(system_prompt, history, message),
            "temperature": 0.2,
            "max_tokens": 300,
            "fallback_providers": "",
        }

    async def _complete(
        self,
        system_prompt: Optional[str],
        history: Sequence[BaseMessage],
        message: str,
    ) -> Tuple[str, List[str]]:
        r = await self.client.post(
            EDEN_AI_CHAT_URL,
            json=self.build_payload(system_prompt, history, message),
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if r.status_code != 200:
            raise ProviderCallError(_error_message(r), status_code=r.status_code)

        data = r.json()
        result = data.get(self.engine) if isinstance(data, dict) else None
        if not isinstance(result, dict):
            raise ProviderCallError(f"No valid response from Eden AI for engine '{self.engine}'")

        if result.get("status") == "fail":
            error = result.get("error") or {}
            detail = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderCallError(f"Eden AI engine '{self.engine}' failed: {detail}")

        return result.get("generated_text") or "", []

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            detail = error.get("message")
            if isinstance(detail, dict):
                detail = "; ".join(f"{key}: {value}" for key, value in detail.items())
            if detail:
                return str(detail)
        elif error:
            return str(error)
        if body.get("detail"):
            return str(body["detail"])
    return f"HTTP {response.status_code}: {response.text[:200]}"
