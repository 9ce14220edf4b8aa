"""LLM-generated farm status and irrigation suggestion."""

import logging
from typing import List, Optional

from pydantic import BaseModel

from ..providers.base import ChatProvider
from .sensors import SensorReading, parse_json_reply
from .weather import ForecastDay

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "Farm status being analyzed"
DEFAULT_SUGGESTION = "Generating personalized suggestions..."
FALLBACK_STATUS = "Farm is being monitored"
FALLBACK_SUGGESTION = "Analyzing sensor data for personalized recommendations..."


class FarmAdvice(BaseModel):
    status: str
    suggestion: str


def build_prompt(reading: SensorReading, forecast: Optional[List[ForecastDay]] = None) -> str:
    weather_info = ""
    if forecast:
        days = "\n".join(
            f"{day.day}:\n"
            f"- Temperature: {day.temperature}\n"
            f"- Weather: {day.weather}\n"
            f"- Humidity: {day.humidity}%\n"
            f"- Wind: {day.wind}\n"
            f"- Rain Chance: {day.chance_of_rain}%"
            for day in forecast
        )
        weather_info = f"\nWeather Forecast:\n{days}\n"

    return f"""As an agricultural expert AI, analyze these sensor readings and weather forecast to provide farm status and irrigation suggestions:

Current Readings:
- Soil Moisture: {reading.soil_moisture}%
- TDS (Total Dissolved Solids): {reading.tds} ppm
- pH Level: {reading.ph_level}
- Water Clarity: {reading.clarity}
{weather_info}
Based on both current conditions and weather forecast, provide a JSON response with:
1. A brief status of the farm (1 short sentence)
2. A specific irrigation suggestion considering weather conditions (1-2 sentences)

Example format:
{{
  "status": "Farm conditions are optimal",
  "suggestion": "Consider early morning irrigation tomorrow as no rain is expected and temperatures will be high."
}}

Analyze and respond:"""


class AdviceGenerator:
    """Turns a reading and forecast into a short status and suggestion."""

    def __init__(self, provider: ChatProvider):
        self.provider = provider

    async def generate(self, reading: SensorReading, forecast: Optional[List[ForecastDay]] = None) -> FarmAdvice:
        result = await self.provider.send(None, [], build_prompt(reading, forecast))
        if not result.ok:
            logger.warning(f"Advice generation failed: {result.message}")
            return FarmAdvice(status=FALLBACK_STATUS, suggestion=FALLBACK_SUGGESTION)

        try:
            advice = parse_json_reply(result.text)
        except ValueError as e:
            logger.warning(f"Unusable advice reply: {e}")
            return FarmAdvice(status=FALLBACK_STATUS, suggestion=FALLBACK_SUGGESTION)

        return FarmAdvice(
            status=str(advice.get("status") or DEFAULT_STATUS),
            suggestion=str(advice.get("suggestion") or DEFAULT_SUGGESTION),
        )
