"""Request models for the API."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

ASSISTANT_ROLES = ("assistant", "bot", "model")


class HistoryMessage(BaseModel):
    """One earlier turn of the conversation."""

    role: str = Field(..., description="user, or assistant (bot and model are accepted)")
    content: str = Field(..., description="Message text")

    @field_validator("role")
    @classmethod
    def normalize_role(cls, v: str) -> str:
        role = v.strip().lower()
        if role == "user":
            return "user"
        if role in ASSISTANT_ROLES:
            return "assistant"
        raise ValueError(f"Unsupported role '{v}'")


class ChatRequest(BaseModel):
    """Request model for the chat endpoints.

    ``message`` is optional at the schema level so that a missing message is
    reported as ``Message is required`` instead of a generic validation error.
    """

    message: Optional[str] = Field(None, description="The farmer's question")
    history: List[HistoryMessage] = Field(default_factory=list, description="Earlier turns, oldest first")

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "How often should I water my wheat field?",
                "history": [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hello! How can I help with your farm's water today?"},
                ],
            }
        }
    }

    def turns(self):
        return [(turn.role, turn.content) for turn in self.history]
