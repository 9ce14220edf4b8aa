"""Shared types and base class for LLM chat provider adapters."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import httpx
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from ..core.logging import PerformanceMonitor, log_provider_call
from .classifier import ProviderErrorKind, classify_error

logger = logging.getLogger(__name__)

FARMING_SYSTEM_PROMPT = """You are an agricultural assistant for JalSetu, a smart water management app for farmers.
You help farmers with questions about:
- Water management and irrigation best practices
- Soil moisture interpretation
- Water quality metrics (pH, TDS, temperature)
- Weather predictions and water conservation
- Crop-specific watering needs
- Water-saving techniques

Always provide practical, actionable advice tailored to farmers. Keep responses concise, helpful, and focused on water management for agriculture.
If asked about topics unrelated to farming or water management, politely steer the conversation back to agricultural water topics."""


@dataclass(frozen=True)
class ProviderOk:
    """Successful completion."""
    text: str
    sources: List[str] = field(default_factory=list)

    ok = True


@dataclass(frozen=True)
class ProviderErr:
    """Failed completion, already classified."""
    kind: ProviderErrorKind
    message: str
    status_code: Optional[int] = None

    ok = False


ProviderResult = Union[ProviderOk, ProviderErr]


class ProviderCallError(Exception):
    """Raised inside an adapter when the upstream API answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None, transport_error: bool = False):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.transport_error = transport_error


def to_history(turns: Sequence[Tuple[str, str]]) -> List[BaseMessage]:
    """Convert ``(role, content)`` pairs into chat messages.

    ``user`` becomes a human turn; ``assistant``, ``bot`` and ``model`` all
    become AI turns. Order is kept exactly as given.
    """
    history: List[BaseMessage] = []
    for role, content in turns:
        if role == "user":
            history.append(HumanMessage(content=content))
        elif role in ("assistant", "bot", "model"):
            history.append(AIMessage(content=content))
        else:
            raise ValueError(f"Unsupported chat role: {role}")
    return history


def openai_style_messages(system_prompt: Optional[str], history: Sequence[BaseMessage], message: str) -> List[dict]:
    """Build a ``[{role, content}]`` list for OpenAI-compatible chat APIs."""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for turn in history:
        messages.append({
            "role": "user" if turn.type == "human" else "assistant",
            "content": turn.content,
        })
    messages.append({"role": "user", "content": message})
    return messages


class ChatProvider(ABC):
    """One hosted chat-completion API behind a uniform ``send`` call.

    Subclasses implement ``_complete`` and may raise anything; ``send``
    turns every failure into a classified ``ProviderErr`` so callers never
    see a raw exception.
    """

    name: str = "provider"

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(
        self,
        system_prompt: Optional[str],
        history: Sequence[BaseMessage],
        message: str,
    ) -> ProviderResult:
        """Send one chat turn to the provider.

        Args:
            system_prompt: Domain instructions for the model (``None`` to omit)
            history: Earlier turns, oldest first
            message: The new user message

        Returns:
            ``ProviderOk`` with the completion text, or ``ProviderErr``
        """
        if not self.enabled:
            return self._failure(0.0, None, f"{self.display_name} API key not configured")

        start = time.time()
        try:
            with PerformanceMonitor("provider_call", logger=logger, provider=self.name):
                text, sources = await self._complete(system_prompt, history, message)
        except ProviderCallError as e:
            return self._failure(time.time() - start, e.status_code, e.message, transport_error=e.transport_error)
        except httpx.TransportError as e:
            return self._failure(time.time() - start, None, f"{type(e).__name__}: {e}", transport_error=True)
        except Exception as e:
            logger.exception(f"Unexpected error from {self.name} provider")
            return self._failure(time.time() - start, None, f"{type(e).__name__}: {e}")

        if not text or not text.strip():
            return self._failure(time.time() - start, None, f"{self.display_name} returned an empty response")

        log_provider_call(self.name, time.time() - start, "ok")
        return ProviderOk(text=text.strip(), sources=list(sources))

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    def _failure(
        self,
        duration: float,
        status_code: Optional[int],
        message: str,
        transport_error: bool = False,
    ) -> ProviderErr:
        kind = classify_error(status_code, message, transport_error=transport_error)
        log_provider_call(self.name, duration, kind.value, status_code=status_code, error=message)
        return ProviderErr(kind=kind, message=message, status_code=status_code)

    @abstractmethod
    async def _complete(
        self,
        system_prompt: Optional[str],
        history: Sequence[BaseMessage],
        message: str,
    ) -> Tuple[str, List[str]]:
        """Perform the HTTP call and return ``(text, sources)``."""

    async def aclose(self) -> None:
        """Release HTTP resources held by the adapter."""
