"""Graph state models for the chat fallback workflow."""

from dataclasses import dataclass, field
from typing import List, Optional, TypedDict

from langchain_core.messages import BaseMessage

from ..providers.base import ProviderResult


class ChatState(TypedDict):
    """State carried through the fallback graph."""

    message: str
    history: List[BaseMessage]
    result: Optional[ProviderResult]
    response_text: str
    rate_limited: bool
    auth_error: bool
    used_fallback: bool
    sources: List[str]


@dataclass
class ChatResponse:
    """Outcome of one chat turn. ``response_text`` is never empty."""

    response_text: str
    rate_limited: bool = False
    auth_error: bool = False
    used_fallback: bool = False
    sources: List[str] = field(default_factory=list)


def create_initial_state(message: str, history: Optional[List[BaseMessage]] = None) -> ChatState:
    """Create the state a graph run starts from."""
    return ChatState(
        message=message,
        history=list(history or []),
        result=None,
        response_text="",
        rate_limited=False,
        auth_error=False,
        used_fallback=False,
        sources=[],
    )


def to_response(state: ChatState) -> ChatResponse:
    return ChatResponse(
        response_text=state.get("response_text", ""),
        rate_limited=state.get("rate_limited", False),
        auth_error=state.get("auth_error", False),
        used_fallback=state.get("used_fallback", False),
        sources=list(state.get("sources") or []),
    )
