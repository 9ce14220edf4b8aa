"""API models package."""

from .request import ChatRequest, HistoryMessage
from .response import (
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    IrrigationTipRecord,
    SoilMoistureRecord,
    TurbidityResponse,
    WaterQualityRecord,
    WeatherPredictionRecord,
)

__all__ = [
    "ChatRequest",
    "HistoryMessage",
    "ChatResponse",
    "ErrorResponse",
    "HealthResponse",
    "IrrigationTipRecord",
    "SoilMoistureRecord",
    "TurbidityResponse",
    "WaterQualityRecord",
    "WeatherPredictionRecord",
]
