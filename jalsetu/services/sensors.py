"""Simulated field sensor readings."""

import json
import logging
import random
import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..providers.base import ChatProvider

logger = logging.getLogger(__name__)

CLARITY_VALUES = ("Clear", "Slightly Turbid", "Turbid")

SENSOR_PROMPT = """You are an agricultural IoT sensor system. Generate realistic sensor readings for a farm field.

Rules:
1. Soil moisture should be between 40-80% (optimal range for most crops)
2. TDS (Total Dissolved Solids) should be between 300-600 ppm (good range for agriculture)
3. pH level should be between 6.0-7.2 (optimal for most crops)
4. Water clarity should be one of: "Clear", "Slightly Turbid", "Turbid"
5. Return ONLY a JSON object with these exact keys: soilMoisture, tds, phLevel, clarity
6. All values should be numbers (no units or strings) except clarity which should be a string

Example response format:
{
  "soilMoisture": 65,
  "tds": 450,
  "phLevel": 6.8,
  "clarity": "Clear"
}

Generate new values for field {field_id} now:"""

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

MoistureStatus = Literal["optimal", "warning", "danger"]


class SensorReading(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    soil_moisture: float
    tds: float
    ph_level: float
    clarity: str


def moisture_status(level: float) -> MoistureStatus:
    if level < 30:
        return "danger"
    if level < 50:
        return "warning"
    return "optimal"


def parse_json_reply(text: str) -> Dict[str, Any]:
    """Parse a model reply that should be a JSON object, tolerating code fences."""
    data = json.loads(_FENCE.sub("", text.strip()))
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SensorDataGenerator:
    """Asks the LLM for plausible readings, falling back to random ones."""

    def __init__(self, provider: ChatProvider, rng: Optional[random.Random] = None):
        self.provider = provider
        self.rng = rng or random.Random()

    async def generate(self, field_id: int) -> SensorReading:
        result = await self.provider.send(None, [], SENSOR_PROMPT.replace("{field_id}", str(field_id)))
        if not result.ok:
            logger.warning(f"Sensor generation for field {field_id} fell back to random values: {result.message}")
            return self.random_reading()

        try:
            return self.parse(result.text)
        except ValueError as e:
            logger.warning(f"Unusable sensor reply for field {field_id}: {e}")
            return self.random_reading()

    @staticmethod
    def parse(text: str) -> SensorReading:
        """Validate and clamp a JSON sensor reply.

        Raises:
            ValueError: If the reply is not JSON or has wrongly typed values
        """
        data = parse_json_reply(text)
        moisture, tds, ph, clarity = (data.get(key) for key in ("soilMoisture", "tds", "phLevel", "clarity"))
        if not (_is_number(moisture) and _is_number(tds) and _is_number(ph) and isinstance(clarity, str)):
            raise ValueError("Invalid data types in sensor reply")

        return SensorReading(
            soil_moisture=_clamp(moisture, 40, 80),
            tds=_clamp(tds, 300, 600),
            ph_level=_clamp(ph, 6.0, 7.2),
            clarity=clarity if clarity in CLARITY_VALUES else "Clear",
        )

    def random_reading(self) -> SensorReading:
        return SensorReading(
            soil_moisture=self.rng.randrange(45, 75),
            tds=self.rng.randrange(350, 550),
            ph_level=round(self.rng.uniform(6.2, 7.0), 1),
            clarity="Clear",
        )


def simulate_turbidity(rng: random.Random, field_names=("Field 1", "Field 2")) -> Dict[str, Any]:
    """Simulated turbidity in NTU, 1.0-5.0 at one decimal."""
    def reading() -> float:
        return round(rng.uniform(1.0, 5.0), 1)

    return {
        "currentTurbidity": reading(),
        "fields": [{"fieldName": name, "value": reading()} for name in field_names],
    }
