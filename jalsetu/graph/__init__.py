"""LangGraph workflow and state management."""

from .state import ChatResponse, ChatState, create_initial_state
from .workflow import HIGH_DEMAND_MESSAGE, FallbackOrchestrator

__all__ = [
    'ChatResponse',
    'ChatState',
    'create_initial_state',
    'FallbackOrchestrator',
    'HIGH_DEMAND_MESSAGE',
]
