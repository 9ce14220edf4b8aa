import httpx
import pytest

from conftest import mock_client
from jalsetu.core.exceptions import WeatherServiceError
from jalsetu.services.weather import (
    WeatherService,
    build_report,
    day_label,
    humidity_advice,
    uv_advice,
    weather_type,
    wind_advice,
)


def forecast_day(date, code, maxtemp=30.0, humidity=60, wind=8.0, uv=5.0, rain=10):
    return {
        "date": date,
        "day": {
            "maxtemp_c": maxtemp,
            "avghumidity": humidity,
            "maxwind_kph": wind,
            "uv": uv,
            "daily_chance_of_rain": rain,
            "condition": {"code": code, "text": "whatever"},
        },
    }


def payload(tomorrow):
    return {
        "location": {"name": "Noida"},
        "current": {
            "temp_c": 31.4,
            "feelslike_c": 33.6,
            "humidity": 55,
            "wind_kph": 11.2,
            "wind_dir": "NW",
            "uv": 7.0,
            "pressure_mb": 1008.0,
            "vis_km": 10.0,
        },
        "forecast": {
            "forecastday": [
                forecast_day("2024-06-10", 1000),
                tomorrow,
                forecast_day("2024-06-12", 1003),
            ]
        },
    }


@pytest.mark.parametrize("code,expected", [
    (1000, "sunny"),
    (1003, "partly-cloudy"),
    (1006, "cloudy"),
    (1030, "cloudy"),
    (1063, "rainy"),
    (1087, "partly-cloudy"),
    (1189, "rainy"),
    (1264, "rainy"),
    (1282, "partly-cloudy"),
])
def test_weather_type(code, expected):
    assert weather_type(code) == expected


def test_advice_thresholds():
    assert uv_advice(8) == "Very high UV levels - protect crops sensitive to UV damage"
    assert uv_advice(2.9) == "Low UV levels"
    assert humidity_advice(80) == "High humidity - monitor for fungal diseases"
    assert humidity_advice(30) == "Low humidity - increase irrigation frequency"
    assert wind_advice(20) == "Strong winds - secure young plants and consider windbreaks"
    assert wind_advice(9.9) == "Light winds - normal irrigation recommended"


def test_day_labels():
    assert day_label(0, "2024-06-10") == "Today"
    assert day_label(1, "2024-06-11") == "Tomorrow"
    assert day_label(2, "2024-06-12") == "Wed"


def test_rain_tomorrow_reduces_irrigation():
    report = build_report(payload(forecast_day("2024-06-11", 1189, humidity=85, wind=12, uv=2, rain=80)))

    assert report.message == "Rain expected tomorrow (80% chance)"
    assert report.advice == (
        "Reduce irrigation to conserve water. "
        "High humidity - monitor for fungal diseases. "
        "Moderate winds - increased water evaporation likely. "
        "Low UV levels."
    )
    assert [day.day for day in report.forecast] == ["Today", "Tomorrow", "Wed"]
    assert report.forecast[1].weather == "rainy"
    assert report.current_conditions.temperature == "31°C"
    assert report.current_conditions.wind == "11.2 km/h NW"


def test_hot_sunny_day_increases_irrigation():
    report = build_report(payload(forecast_day("2024-06-11", 1000, maxtemp=38.6)))

    assert report.message == "High temperatures expected (39°C)"
    assert report.advice.startswith("Increase irrigation to prevent water stress. ")


def test_mild_sunny_day_has_no_irrigation_change():
    report = build_report(payload(forecast_day("2024-06-11", 1000, maxtemp=28)))

    assert report.message == "Weather forecast for tomorrow:"
    assert report.advice.startswith("Optimal humidity levels for most crops. ")


def test_report_serializes_camel_case():
    body = build_report(payload(forecast_day("2024-06-11", 1003))).model_dump(by_alias=True)

    assert "currentConditions" in body
    assert set(body["forecast"][0]) == {"day", "temperature", "weather", "humidity", "wind", "uvIndex", "chanceOfRain"}


@pytest.mark.asyncio
async def test_get_forecast_calls_weatherapi():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=payload(forecast_day("2024-06-11", 1003)))

    service = WeatherService("wkey", location="Noida", client=mock_client(handler))
    report = await service.get_forecast()

    assert report.message == "Partly cloudy conditions expected"
    params = requests[0].url.params
    assert params["key"] == "wkey"
    assert params["q"] == "Noida"
    assert params["days"] == "3"


@pytest.mark.asyncio
async def test_get_forecast_requires_key():
    with pytest.raises(WeatherServiceError):
        await WeatherService(None).get_forecast()


@pytest.mark.asyncio
async def test_get_forecast_http_error():
    def handler(request):
        return httpx.Response(403, json={"error": {"code": 2008, "message": "API key has been disabled."}})

    with pytest.raises(WeatherServiceError) as exc_info:
        await WeatherService("wkey", client=mock_client(handler)).get_forecast()

    assert "403" in exc_info.value.message


@pytest.mark.asyncio
async def test_get_forecast_malformed_payload():
    def handler(request):
        return httpx.Response(200, json={"current": {}, "forecast": {"forecastday": []}})

    with pytest.raises(WeatherServiceError):
        await WeatherService("wkey", client=mock_client(handler)).get_forecast()


@pytest.mark.asyncio
async def test_get_forecast_network_failure():
    def handler(request):
        raise httpx.ConnectError("no route to host", request=request)

    with pytest.raises(WeatherServiceError):
        await WeatherService("wkey", client=mock_client(handler)).get_forecast()
