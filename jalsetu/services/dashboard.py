"""Per-farm dashboard aggregation."""

import logging
from statistics import mean
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.concurrency import run_in_threadpool

from ..core.exceptions import NotFoundError, WeatherServiceError
from ..core.logging import PerformanceMonitor
from ..database.operations import FarmRepository
from .advice import AdviceGenerator, FarmAdvice
from .sensors import SensorDataGenerator, SensorReading, moisture_status
from .weather import ForecastDay, WeatherReport, WeatherService

logger = logging.getLogger(__name__)

NO_PREDICTION_MESSAGE = "No weather prediction available"
NO_PREDICTION_ADVICE = "Check back later for irrigation recommendations"
NO_TIP = "No irrigation tips available yet. Check back soon!"

MOISTURE_LABELS = {
    "optimal": "Ideal Moisture Level",
    "warning": "Moisture Getting Low",
    "danger": "Irrigation Needed",
}

CLARITY_STATUS = {"Clear": "Good", "Slightly Turbid": "Fair", "Turbid": "Poor"}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FarmerInfo(_CamelModel):
    name: Optional[str] = None


class FarmInfo(_CamelModel):
    id: int
    name: str
    location: Optional[str] = None
    status: Optional[str] = None


class WaterQualityMetric(_CamelModel):
    name: str
    value: str
    unit: Optional[str] = None
    status: str
    icon: str


class FieldMoisture(_CamelModel):
    id: int
    name: str
    value: float
    status: str


class SoilMoistureSummary(_CamelModel):
    level: float
    status: str
    fields: List[FieldMoisture]


class WaterPrediction(_CamelModel):
    message: str
    advice: str
    forecast: List[ForecastDay]


class DashboardData(_CamelModel):
    farmer: FarmerInfo
    farm: FarmInfo
    water_quality: List[WaterQualityMetric]
    soil_moisture: SoilMoistureSummary
    water_prediction: WaterPrediction
    irrigation_tip: str


def _format_number(value: float) -> str:
    return f"{value:g}"


def water_quality_metrics(record: Optional[Dict[str, Any]]) -> List[WaterQualityMetric]:
    if record is None:
        return []
    ph, tds, clarity = record["ph_level"], record["tds"], record["clarity"]
    return [
        WaterQualityMetric(name="pH Level", value=_format_number(ph), status="Good" if 6.0 <= ph <= 7.5 else "Needs Attention", icon="ph"),
        WaterQualityMetric(name="TDS", value=_format_number(tds), unit="ppm", status="Good" if tds <= 1000 else "High", icon="tds"),
        WaterQualityMetric(name="Clarity", value=clarity, status=CLARITY_STATUS.get(clarity, "Good"), icon="clarity"),
    ]


def soil_moisture_summary(fields: List[Dict[str, Any]], readings: List[Dict[str, Any]]) -> SoilMoistureSummary:
    by_field = {reading["field_id"]: reading for reading in readings}
    rows = []
    for field in fields:
        reading = by_field.get(field["id"])
        rows.append(FieldMoisture(
            id=field["id"],
            name=field.get("name") or f"Field {field['id']}",
            value=reading["moisture_level"] if reading else 0,
            status=reading["status"] if reading else "optimal",
        ))

    measured = [by_field[field["id"]]["moisture_level"] for field in fields if field["id"] in by_field]
    if not measured:
        return SoilMoistureSummary(level=0, status="No moisture readings yet", fields=rows)

    level = round(mean(measured))
    return SoilMoistureSummary(level=level, status=MOISTURE_LABELS[moisture_status(level)], fields=rows)


class DashboardService:
    """Builds the dashboard payload for one farm.

    ``refresh`` runs the full pipeline (weather, sensors, advice, persist);
    ``latest`` only reads what is already stored.
    """

    def __init__(
        self,
        repository: FarmRepository,
        weather: WeatherService,
        sensors: SensorDataGenerator,
        advice: AdviceGenerator,
    ):
        self.repository = repository
        self.weather = weather
        self.sensors = sensors
        self.advice = advice

    def _farm_and_fields(self, farm_id: int):
        farm = self.repository.get_farm(farm_id)
        if farm is None:
            raise NotFoundError(f"Farm {farm_id} not found", resource="farm", resource_id=farm_id)
        fields = self.repository.get_fields(farm_id) or [{"id": 1, "name": "Field 1"}]
        return farm, fields

    async def refresh(self, farm_id: int) -> DashboardData:
        """Generate, persist and return a fresh dashboard.

        Raises:
            NotFoundError: If the farm does not exist
            DatabaseError: If persisting the readings fails
        """
        with PerformanceMonitor("dashboard_refresh", logger=logger, farm_id=farm_id):
            farm, fields = await run_in_threadpool(self._farm_and_fields, farm_id)

            try:
                report = await self.weather.get_forecast()
            except WeatherServiceError as e:
                logger.warning(f"Dashboard for farm {farm_id} continues without weather: {e}")
                report = None

            readings: List[SensorReading] = [await self.sensors.generate(field["id"]) for field in fields]
            advice = await self.advice.generate(readings[0], report.forecast if report else None)

            return await run_in_threadpool(self._store, farm, fields, readings, report, advice)

    def _store(
        self,
        farm: Dict[str, Any],
        fields: List[Dict[str, Any]],
        readings: List[SensorReading],
        report: Optional[WeatherReport],
        advice: FarmAdvice,
    ) -> DashboardData:
        farm_id = farm["id"]
        primary = readings[0]
        water_quality = self.repository.create_water_quality(farm_id, primary.ph_level, primary.tds, primary.clarity)
        moistures = [
            self.repository.create_soil_moisture(
                farm_id,
                field["id"],
                reading.soil_moisture,
                moisture_status(reading.soil_moisture),
            )
            for field, reading in zip(fields, readings)
        ]
        prediction = None
        if report is not None:
            prediction = self.repository.create_weather_prediction(
                farm_id,
                report.message,
                report.advice,
                [day.model_dump(by_alias=True) for day in report.forecast],
            )
        tip = self.repository.create_irrigation_tip(farm_id, advice.suggestion)
        self.repository.update_farm_status(farm_id, advice.status)
        farm = {**farm, "status": advice.status}

        return self._assemble(farm, fields, water_quality, moistures, prediction, tip)

    def latest(self, farm_id: int) -> DashboardData:
        """Assemble the dashboard from stored readings only. Blocking; call from a threadpool.

        Raises:
            NotFoundError: If the farm does not exist
        """
        farm, fields = self._farm_and_fields(farm_id)
        return self._assemble(
            farm,
            fields,
            self.repository.latest_water_quality(farm_id),
            self.repository.latest_soil_moistures(farm_id),
            self.repository.latest_weather_prediction(farm_id),
            self.repository.latest_irrigation_tip(farm_id),
        )

    def _assemble(self, farm, fields, water_quality, moistures, prediction, tip) -> DashboardData:
        if prediction is not None:
            water_prediction = WaterPrediction(
                message=prediction["message"],
                advice=prediction["advice"],
                forecast=[ForecastDay.model_validate(day) for day in prediction["forecast"]],
            )
        else:
            water_prediction = WaterPrediction(message=NO_PREDICTION_MESSAGE, advice=NO_PREDICTION_ADVICE, forecast=[])

        return DashboardData(
            farmer=FarmerInfo(name=farm.get("farmer_name")),
            farm=FarmInfo(id=farm["id"], name=farm["name"], location=farm.get("location"), status=farm.get("status")),
            water_quality=water_quality_metrics(water_quality),
            soil_moisture=soil_moisture_summary(fields, moistures),
            water_prediction=water_prediction,
            irrigation_tip=tip["tip"] if tip else NO_TIP,
        )
