"""Google Gemini adapter using the generateContent REST endpoint."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from langchain_core.messages import BaseMessage

from .base import ChatProvider, ProviderCallError

logger = logging.getLogger(__name__)

GEMINI_API = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

GENERATION_CONFIG = {
    "temperature": 0.7,
    "maxOutputTokens": 800,
}


class GeminiProvider(ChatProvider):
    """Chat adapter for Gemini.

    The system prompt only goes out with the first turn of a conversation,
    sent as ``systemInstruction``. Later turns rely on the history.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-1.5-pro",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(api_key)
        self.model = model
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def build_payload(
        self,
        system_prompt: Optional[str],
        history: Sequence[BaseMessage],
        message: str,
    ) -> Dict[str, Any]:
        contents = [
            {
                "role": "user" if turn.type == "human" else "model",
                "parts": [{"text": turn.content}],
            }
            for turn in history
        ]
        contents.append({"role": "user", "parts": [{"text": message}]})

        payload: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": dict(GENERATION_CONFIG),
        }
        if system_prompt and not history:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return payload

    async def _complete(
        self,
        system_prompt: Optional[str],
        history: Sequence[BaseMessage],
        message: str,
    ) -> Tuple[str, List[str]]:
        url = GEMINI_API.format(model=self.model)
        r = await self.client.post(
            url,
            json=self.build_payload(system_prompt, history, message),
            headers={"x-goog-api-key": self.api_key},
        )
        if r.status_code != 200:
            raise ProviderCallError(_error_message(r), status_code=r.status_code)

        data = r.json()
        candidates = data.get("candidates") or [{}]
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)

        if not text:
            reason = (data.get("promptFeedback") or {}).get("blockReason") or candidates[0].get("finishReason")
            logger.warning(f"Gemini returned no text (reason: {reason})")
        return text, []

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Gemini error body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return f"{error.get('status', response.status_code)}: {error['message']}"
    return f"HTTP {response.status_code}: {response.text[:200]}"
