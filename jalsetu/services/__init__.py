"""Farm dashboard services: weather, sensors, advice and aggregation."""

from .advice import AdviceGenerator, FarmAdvice
from .dashboard import DashboardData, DashboardService
from .sensors import SensorDataGenerator, SensorReading, moisture_status, simulate_turbidity
from .weather import ForecastDay, WeatherReport, WeatherService

__all__ = [
    "AdviceGenerator",
    "FarmAdvice",
    "DashboardData",
    "DashboardService",
    "SensorDataGenerator",
    "SensorReading",
    "moisture_status",
    "simulate_turbidity",
    "ForecastDay",
    "WeatherReport",
    "WeatherService",
]
