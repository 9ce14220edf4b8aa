"""API routers."""

from .chat import router as chat_router
from .farm import router as farm_router

__all__ = ["chat_router", "farm_router"]
