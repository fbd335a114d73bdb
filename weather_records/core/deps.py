from fastapi import Request

from weather_records.core.config import Settings
from weather_records.services.providers.openweather_client import OpenWeatherClient


# ---------------------------------------------------------------------
# Dependency injection
# ---------------------------------------------------------------------
# Shared components are built once in `create_app()` and kept on
# `app.state`; these dependencies hand them to request handlers and are
# the seams tests override.

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_weather_gateway(request: Request) -> OpenWeatherClient:
    return request.app.state.weather_gateway
