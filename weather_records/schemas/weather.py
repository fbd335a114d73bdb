from typing import Optional

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    lat: float
    lon: float


class ForecastSample(BaseModel):
    """
    One forecast step (OpenWeatherMap publishes one every 3 hours).
    """

    date: str = Field(..., description="Sample date (YYYY-MM-DD)")
    time: str = Field(..., description="Sample time of day (HH:MM:SS, UTC)")
    temperature: int = Field(..., description="Temperature in °C, rounded")
    feels_like: int = Field(..., description="Perceived temperature in °C, rounded")
    humidity: Optional[int] = None
    pressure: Optional[int] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[int] = None
    weather_main: Optional[str] = None
    weather_description: Optional[str] = None
    weather_icon: Optional[str] = None
    visibility: Optional[float] = Field(None, description="Visibility in km")
    clouds: Optional[int] = Field(None, description="Cloud cover in %")


class ForecastPayload(BaseModel):
    """
    Forecast for a resolved location, as stored in `weather_records.weather_data`.
    """

    location: str = Field(..., description="Canonical location name")
    country: Optional[str] = None
    coordinates: Coordinates
    weather_data: list[ForecastSample] = Field(default_factory=list)


class LocationDetails(BaseModel):
    """
    Resolved location metadata, as stored in `weather_records.maps_data`.

    `coordinates` is absent when geocoding ran in degraded mode.
    """

    city: str
    state: str = ""
    country: str
    formatted_address: str
    coordinates: Optional[Coordinates] = None
