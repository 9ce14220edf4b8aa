"""Offline farming knowledge used as the chat fallback."""

from .base import KnowledgeBase

__all__ = ["KnowledgeBase"]
