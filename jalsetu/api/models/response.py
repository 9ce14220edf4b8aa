"""Response models for the API."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...graph.state import ChatResponse as ChatResult


class ChatResponse(BaseModel):
    """Response model for the chat endpoints.

    Flags are only present when true and ``sources`` only when non-empty.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "response": "Water deeply but infrequently, early in the morning.",
                "usedFallback": True,
            }
        },
    )

    response: str = Field(..., description="Answer text")
    rate_limited: Optional[bool] = Field(None, alias="rateLimited")
    api_key_error: Optional[bool] = Field(None, alias="apiKeyError")
    used_fallback: Optional[bool] = Field(None, alias="usedFallback")
    sources: Optional[List[str]] = Field(None, description="Citations returned by the provider")

    @classmethod
    def from_result(cls, result: ChatResult) -> "ChatResponse":
        return cls(
            response=result.response_text,
            rate_limited=result.rate_limited or None,
            api_key_error=result.auth_error or None,
            used_fallback=result.used_fallback or None,
            sources=result.sources or None,
        )

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error description")
    message: Optional[str] = Field(None, description="Error detail or type")

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp")
    version: str = Field("1.0.0", description="Application version")
    database_healthy: Optional[bool] = None
    issues: List[str] = Field(default_factory=list)


class _RecordModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    farm_id: int
    timestamp: datetime


class WaterQualityRecord(_RecordModel):
    ph_level: float
    tds: float
    clarity: str


class SoilMoistureRecord(_RecordModel):
    field_id: int
    moisture_level: float
    status: str


class WeatherPredictionRecord(_RecordModel):
    message: str
    advice: str
    forecast: List[Dict[str, Any]]


class IrrigationTipRecord(_RecordModel):
    tip: str


class TurbidityField(BaseModel):
    fieldName: str
    value: float


class TurbidityResponse(BaseModel):
    currentTurbidity: float
    fields: List[TurbidityField]
