import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from weather_records.core.auth import CurrentUser, get_current_user
from weather_records.core.deps import get_weather_gateway
from weather_records.schemas.weather import ForecastPayload
from weather_records.services.providers.openweather_client import (
    GatewayError,
    LocationNotFoundError,
    OpenWeatherClient,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["Weather"])


async def _forecast_or_500(gateway: OpenWeatherClient, location: str, days: int) -> ForecastPayload:
    try:
        return await gateway.fetch_forecast(location, days)
    except LocationNotFoundError:
        logger.info("Location not found: %r", location)
        raise HTTPException(status_code=500, detail="Location not found")
    except GatewayError:
        logger.exception("Weather lookup failed for %r", location)
        raise HTTPException(status_code=500, detail="Failed to fetch weather data")


@router.get(
    "/current/{location}",
    response_model=ForecastPayload,
    summary="Current weather",
    description="Returns the next day of 3-hourly forecast samples for a location.",
)
async def current_weather(
    location: str,
    user: CurrentUser = Depends(get_current_user),
    gateway: OpenWeatherClient = Depends(get_weather_gateway),
):
    return await _forecast_or_500(gateway, location, 1)


@router.get(
    "/forecast/{location}",
    response_model=ForecastPayload,
    summary="Multi-day forecast",
    description=(
        "Returns up to `days` days of 3-hourly forecast samples. "
        "The provider publishes about 5 days; no padding is added beyond that."
    ),
)
async def forecast(
    location: str,
    days: int = Query(5, ge=1, description="Number of days to return"),
    user: CurrentUser = Depends(get_current_user),
    gateway: OpenWeatherClient = Depends(get_weather_gateway),
):
    return await _forecast_or_500(gateway, location, days)
