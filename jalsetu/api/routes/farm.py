"""Farm dashboard and reading endpoints."""

import logging
import random
from typing import List

from fastapi import APIRouter, Depends, Request

from ...core.config import Settings
from ...core.exceptions import NotFoundError
from ...database.operations import FarmRepository
from ...services.dashboard import DashboardData, DashboardService
from ...services.sensors import simulate_turbidity
from ..dependencies import get_app_settings, get_dashboard_service, get_repository
from ..models import (
    IrrigationTipRecord,
    SoilMoistureRecord,
    TurbidityResponse,
    WaterQualityRecord,
    WeatherPredictionRecord,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_farm(repository: FarmRepository, farm_id: int) -> None:
    if repository.get_farm(farm_id) is None:
        raise NotFoundError(f"Farm {farm_id} not found", resource="farm", resource_id=farm_id)


@router.get("/test")
async def test_endpoint():
    return {"message": "API is working"}


# pymongo calls block; handlers that only read MongoDB are plain ``def`` and run in the threadpool.

@router.get("/farm-data", response_model=DashboardData, response_model_by_alias=True)
def farm_data(
    settings: Settings = Depends(get_app_settings),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """Stored dashboard of the default farm."""
    return dashboard.latest(settings.default_farm_id)


@router.get("/farm/{farm_id}/dashboard", response_model=DashboardData, response_model_by_alias=True)
def get_dashboard(farm_id: int, dashboard: DashboardService = Depends(get_dashboard_service)):
    return dashboard.latest(farm_id)


@router.post("/farm/{farm_id}/dashboard/refresh", response_model=DashboardData, response_model_by_alias=True)
async def refresh_dashboard(farm_id: int, dashboard: DashboardService = Depends(get_dashboard_service)):
    """
    Regenerate the dashboard: fetch the forecast, simulate sensor readings,
    ask for advice and store everything before returning it.
    """
    logger.info(f"Refreshing dashboard for farm {farm_id}")
    return await dashboard.refresh(farm_id)


@router.get("/farm/{farm_id}/water-quality", response_model=WaterQualityRecord, response_model_by_alias=True)
def latest_water_quality(farm_id: int, repository: FarmRepository = Depends(get_repository)):
    _require_farm(repository, farm_id)
    record = repository.latest_water_quality(farm_id)
    if record is None:
        raise NotFoundError(f"No water quality readings for farm {farm_id}", resource="water_quality", resource_id=farm_id)
    return record


@router.get("/farm/{farm_id}/soil-moisture", response_model=List[SoilMoistureRecord], response_model_by_alias=True)
def latest_soil_moisture(farm_id: int, repository: FarmRepository = Depends(get_repository)):
    _require_farm(repository, farm_id)
    records = repository.latest_soil_moistures(farm_id)
    if not records:
        raise NotFoundError(f"No soil moisture readings for farm {farm_id}", resource="soil_moisture", resource_id=farm_id)
    return records


@router.get("/farm/{farm_id}/water-prediction", response_model=WeatherPredictionRecord, response_model_by_alias=True)
def latest_water_prediction(farm_id: int, repository: FarmRepository = Depends(get_repository)):
    _require_farm(repository, farm_id)
    record = repository.latest_weather_prediction(farm_id)
    if record is None:
        raise NotFoundError(f"No weather prediction for farm {farm_id}", resource="weather_prediction", resource_id=farm_id)
    return record


@router.get("/farm/{farm_id}/irrigation-tips", response_model=IrrigationTipRecord, response_model_by_alias=True)
def latest_irrigation_tip(farm_id: int, repository: FarmRepository = Depends(get_repository)):
    _require_farm(repository, farm_id)
    record = repository.latest_irrigation_tip(farm_id)
    if record is None:
        raise NotFoundError(f"No irrigation tips for farm {farm_id}", resource="irrigation_tip", resource_id=farm_id)
    return record


@router.get("/turbidity", response_model=TurbidityResponse)
async def turbidity(request: Request):
    rng = getattr(request.app.state, "rng", None) or random.Random()
    return simulate_turbidity(rng)
