"""WeatherAPI forecast client with irrigation advice."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.exceptions import WeatherServiceError
from ..core.logging import PerformanceMonitor

logger = logging.getLogger(__name__)

WEATHER_API_URL = "https://api.weatherapi.com/v1/forecast.json"

WeatherType = Literal["sunny", "cloudy", "rainy", "partly-cloudy"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ForecastDay(_CamelModel):
    day: str
    temperature: str
    weather: WeatherType
    humidity: float
    wind: str
    uv_index: float
    chance_of_rain: float


class CurrentConditions(_CamelModel):
    temperature: str
    feels_like: str
    humidity: float
    wind: str
    uv_index: float
    pressure: str
    visibility: str


class WeatherReport(_CamelModel):
    message: str
    advice: str
    forecast: List[ForecastDay]
    current_conditions: Optional[CurrentConditions] = None


def weather_type(code: int) -> WeatherType:
    """Map a WeatherAPI condition code to one of the four dashboard icons."""
    if code == 1000:
        return "sunny"
    if code <= 1003:
        return "partly-cloudy"
    if code <= 1030:
        return "cloudy"
    if code <= 1063:
        return "rainy"
    if code <= 1087:
        return "partly-cloudy"
    if code <= 1264:
        return "rainy"
    return "partly-cloudy"


def uv_advice(uv_index: float) -> str:
    if uv_index >= 8:
        return "Very high UV levels - protect crops sensitive to UV damage"
    if uv_index >= 6:
        return "High UV levels - consider shade for sensitive crops"
    if uv_index >= 3:
        return "Moderate UV levels - good for most crops"
    return "Low UV levels"


def humidity_advice(humidity: float) -> str:
    if humidity >= 80:
        return "High humidity - monitor for fungal diseases"
    if humidity <= 30:
        return "Low humidity - increase irrigation frequency"
    return "Optimal humidity levels for most crops"


def wind_advice(wind_kph: float) -> str:
    if wind_kph >= 20:
        return "Strong winds - secure young plants and consider windbreaks"
    if wind_kph >= 10:
        return "Moderate winds - increased water evaporation likely"
    return "Light winds - normal irrigation recommended"


def day_label(index: int, date: str) -> str:
    if index == 0:
        return "Today"
    if index == 1:
        return "Tomorrow"
    return datetime.strptime(date, "%Y-%m-%d").strftime("%a")


def build_report(data: Dict[str, Any]) -> WeatherReport:
    """Turn a ``forecast.json`` payload into a report.

    The headline and advice describe tomorrow, so at least two forecast
    days are required.

    Raises:
        KeyError, IndexError, TypeError, ValueError: On a malformed payload
    """
    current = data["current"]
    current_conditions = CurrentConditions(
        temperature=f"{round(current['temp_c'])}°C",
        feels_like=f"{round(current['feelslike_c'])}°C",
        humidity=current["humidity"],
        wind=f"{current['wind_kph']} km/h {current['wind_dir']}",
        uv_index=current["uv"],
        pressure=f"{current['pressure_mb']} mb",
        visibility=f"{current['vis_km']} km",
    )

    days = data["forecast"]["forecastday"]
    forecast = [
        ForecastDay(
            day=day_label(index, entry["date"]),
            temperature=f"{round(entry['day']['maxtemp_c'])}°C",
            weather=weather_type(entry["day"]["condition"]["code"]),
            humidity=entry["day"]["avghumidity"],
            wind=f"{round(entry['day']['maxwind_kph'])} km/h",
            uv_index=entry["day"]["uv"],
            chance_of_rain=entry["day"]["daily_chance_of_rain"],
        )
        for index, entry in enumerate(days)
    ]

    tomorrow = days[1]["day"]
    tomorrow_weather = weather_type(tomorrow["condition"]["code"])

    message = "Weather forecast for tomorrow:"
    advice = ""
    if tomorrow_weather == "rainy":
        message = f"Rain expected tomorrow ({tomorrow['daily_chance_of_rain']}% chance)"
        advice = "Reduce irrigation to conserve water. "
    elif tomorrow_weather == "sunny" and tomorrow["maxtemp_c"] > 35:
        message = f"High temperatures expected ({round(tomorrow['maxtemp_c'])}°C)"
        advice = "Increase irrigation to prevent water stress. "
    elif tomorrow_weather == "partly-cloudy":
        message = "Partly cloudy conditions expected"
        advice = "Standard irrigation recommended. "

    advice += humidity_advice(tomorrow["avghumidity"]) + ". "
    advice += wind_advice(tomorrow["maxwind_kph"]) + ". "
    advice += uv_advice(tomorrow["uv"]) + "."

    return WeatherReport(message=message, advice=advice, forecast=forecast, current_conditions=current_conditions)


class WeatherService:
    """Fetches a three-day forecast from WeatherAPI."""

    def __init__(
        self,
        api_key: Optional[str],
        location: str = "Noida",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.location = location
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def get_forecast(self, location: Optional[str] = None) -> WeatherReport:
        """Fetch the forecast and derive irrigation advice.

        Raises:
            WeatherServiceError: Missing key, HTTP failure or malformed payload
        """
        if not self.api_key:
            raise WeatherServiceError("WeatherAPI key not configured")

        params = {"key": self.api_key, "q": location or self.location, "days": 3, "aqi": "yes"}
        with PerformanceMonitor("weather_forecast", logger=logger, location=params["q"]):
            try:
                r = await self.client.get(WEATHER_API_URL, params=params)
            except httpx.HTTPError as e:
                raise WeatherServiceError(f"WeatherAPI request failed: {e}", original_error=e)

            if r.status_code != 200:
                raise WeatherServiceError(f"WeatherAPI returned HTTP {r.status_code}: {r.text[:200]}", status_code=r.status_code)

            try:
                return build_report(r.json())
            except (KeyError, IndexError, TypeError, ValueError) as e:
                raise WeatherServiceError(f"Malformed WeatherAPI payload: {e}", original_error=e)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
