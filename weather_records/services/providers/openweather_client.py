from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

import httpx

from weather_records.core.config import Settings
from weather_records.schemas.weather import Coordinates, ForecastPayload, ForecastSample, LocationDetails

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for weather gateway failures."""


class MissingCredentialsError(GatewayError):
    pass


class LocationNotFoundError(GatewayError):
    pass


class UpstreamError(GatewayError):
    pass


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class OpenWeatherClient:
    """
    OpenWeatherMap client: geocoding plus the 5 day / 3 hour forecast.

    Key endpoints used:
    - Direct geocoding: /geo/1.0/direct?q={name}&limit=1
    - Forecast: /data/2.5/forecast?lat={lat}&lon={lon}&units=metric

    The forecast is published in 3-hour steps, so one day is 8 samples.
    Nothing is cached and nothing is retried.
    """

    GEO_URL = "http://api.openweathermap.org/geo/1.0/direct"
    FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"
    SAMPLES_PER_DAY = 8
    METRES_PER_KM = 1000

    def __init__(
        self,
        api_key: str | None = None,
        timeout_s: float = 30.0,
        allow_degraded_geocoding: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout_s
        self.allow_degraded_geocoding = allow_degraded_geocoding
        self.transport = transport

    @classmethod
    def from_settings(cls, config: Settings) -> "OpenWeatherClient":
        return cls(
            api_key=config.openweather_api_key,
            timeout_s=config.http_timeout_seconds,
            allow_degraded_geocoding=config.allow_degraded_geocoding,
        )

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.get(url, params=params, headers={"accept": "application/json"})
            r.raise_for_status()
            return r.json()

    async def _geocode(self, name: str) -> List[Dict[str, Any]]:
        data = await self._get_json(self.GEO_URL, {"q": name, "limit": 1, "appid": self.api_key})
        return data if isinstance(data, list) else []

    @staticmethod
    def degraded_location(name: str) -> LocationDetails:
        return LocationDetails(
            city=name,
            state="",
            country="Unknown",
            formatted_address=name,
        )

    @staticmethod
    def format_address(name: str, state: Optional[str], country: str) -> str:
        parts = [name]
        if state:
            parts.append(state)
        parts.append(country)
        return ", ".join(parts)

    async def resolve_location(self, name: str) -> LocationDetails:
        """
        Resolve a free-text place name to location metadata.

        Without an API key (or when the geocoder has no match or fails) this
        returns an identity mapping with country "Unknown", as long as
        degraded geocoding is allowed. Otherwise those cases raise.
        """
        if not self.api_key:
            if not self.allow_degraded_geocoding:
                raise MissingCredentialsError("OPENWEATHER_API_KEY is not configured")
            logger.warning("OpenWeather API key not configured, using basic location data")
            return self.degraded_location(name)

        try:
            candidates = await self._geocode(name)
        except (httpx.HTTPError, ValueError) as e:
            if not self.allow_degraded_geocoding:
                raise UpstreamError("Geocoding request failed") from e
            logger.warning("Geocoding failed for %r, using basic location data: %s", name, e)
            return self.degraded_location(name)

        if not candidates:
            if not self.allow_degraded_geocoding:
                raise LocationNotFoundError("Location not found")
            return self.degraded_location(name)

        top = candidates[0]
        city = top.get("name") or name
        state = top.get("state") or ""
        country = top.get("country") or "Unknown"
        coordinates = None
        if top.get("lat") is not None and top.get("lon") is not None:
            coordinates = Coordinates(lat=top["lat"], lon=top["lon"])

        return LocationDetails(
            city=city,
            state=state,
            country=country,
            formatted_address=self.format_address(city, state, country),
            coordinates=coordinates,
        )

    @classmethod
    def parse_sample(cls, item: Dict[str, Any]) -> ForecastSample:
        """
        Convert one forecast list entry to a sample.

        Temperatures are rounded to whole degrees and visibility converted
        from metres to kilometres.
        """
        day, _, clock = item["dt_txt"].partition(" ")
        main = item.get("main") or {}
        wind = item.get("wind") or {}
        conditions = (item.get("weather") or [{}])[0]
        visibility = item.get("visibility")

        return ForecastSample(
            date=day,
            time=clock,
            temperature=round_half_up(main["temp"]),
            feels_like=round_half_up(main["feels_like"]),
            humidity=main.get("humidity"),
            pressure=main.get("pressure"),
            wind_speed=wind.get("speed"),
            wind_direction=wind.get("deg"),
            weather_main=conditions.get("main"),
            weather_description=conditions.get("description"),
            weather_icon=conditions.get("icon"),
            visibility=visibility / cls.METRES_PER_KM if visibility is not None else None,
            clouds=(item.get("clouds") or {}).get("all"),
        )

    async def fetch_forecast(self, name: str, days: int = 5) -> ForecastPayload:
        """
        Geocode `name` then fetch up to `days` days of 3-hourly samples.

        Returns at most `days * 8` samples; fewer if the provider publishes
        fewer. Missing samples are not padded.

        Raises:
            MissingCredentialsError: no API key configured.
            LocationNotFoundError: the geocoder returned no candidates.
            UpstreamError: any other HTTP or payload failure.
        """
        if not self.api_key:
            raise MissingCredentialsError("OPENWEATHER_API_KEY is not configured")

        try:
            candidates = await self._geocode(name)
            if not candidates:
                raise LocationNotFoundError("Location not found")

            top = candidates[0]
            lat, lon = top["lat"], top["lon"]

            data = await self._get_json(
                self.FORECAST_URL,
                {"lat": lat, "lon": lon, "appid": self.api_key, "units": "metric"},
            )
            items = data.get("list") or []
            samples = [self.parse_sample(item) for item in items[: days * self.SAMPLES_PER_DAY]]

            return ForecastPayload(
                location=top.get("name") or name,
                country=top.get("country"),
                coordinates=Coordinates(lat=lat, lon=lon),
                weather_data=samples,
            )
        except GatewayError:
            raise
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError, IndexError) as e:
            raise UpstreamError("Failed to fetch weather data") from e
