from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Protocol, Union

from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.models.weather_record import WeatherRecord
from weather_records.repositories.weather_record_repository import WeatherRecordRepository
from weather_records.schemas.records import WeatherRecordOut
from weather_records.schemas.weather import ForecastPayload, LocationDetails
from weather_records.services.providers.openweather_client import GatewayError, LocationNotFoundError

logger = logging.getLogger(__name__)

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class WeatherGateway(Protocol):
    async def resolve_location(self, name: str) -> LocationDetails: ...

    async def fetch_forecast(self, name: str, days: int = 5) -> ForecastPayload: ...


class SubmitMode(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class FailureKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    LOCATION_NOT_FOUND = "location_not_found"
    UPSTREAM = "upstream"


@dataclass(frozen=True)
class PipelineFailure:
    kind: FailureKind
    message: str


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of a pipeline run: either a record or exactly one failure.
    """

    record: Optional[WeatherRecordOut] = None
    failure: Optional[PipelineFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, record: WeatherRecordOut) -> "PipelineResult":
        return cls(record=record)

    @classmethod
    def fail(cls, failure: PipelineFailure) -> "PipelineResult":
        return cls(failure=failure)


@dataclass(frozen=True)
class ValidatedRequest:
    location: str
    start_date: date
    end_date: date

    @property
    def days_requested(self) -> int:
        return (self.end_date - self.start_date).days + 1


def parse_calendar_date(value: Optional[str]) -> Optional[date]:
    if not value or not ISO_DATE.match(value.strip()):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


class RecordPipeline:
    """
    Create/update workflow for weather records.

    validate -> (update) ownership -> fetch forecast -> resolve location -> persist

    Each stage returns either its value or a `PipelineFailure`; the first
    failure ends the run. Nothing is written unless both gateway calls
    succeed, so a failed update leaves the stored payload untouched.
    """

    LOCATION_MIN_LENGTH = 2
    LOCATION_MAX_LENGTH = 100
    MAX_DAYS_AHEAD = 14

    NOT_FOUND_MESSAGE = "Weather record not found"

    def __init__(
        self,
        db: AsyncSession,
        gateway: WeatherGateway,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.records = WeatherRecordRepository(db)
        self.gateway = gateway
        self.now = now

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def validate(
        self,
        location: Optional[str],
        start_date: Optional[str],
        end_date: Optional[str],
    ) -> Union[ValidatedRequest, PipelineFailure]:
        """
        Check the request fields in order and report the first violation.
        """
        trimmed = (location or "").strip()
        if not self.LOCATION_MIN_LENGTH <= len(trimmed) <= self.LOCATION_MAX_LENGTH:
            return PipelineFailure(
                FailureKind.VALIDATION,
                f"Valid location is required ({self.LOCATION_MIN_LENGTH}-{self.LOCATION_MAX_LENGTH} characters)",
            )

        start = parse_calendar_date(start_date)
        if start is None:
            return PipelineFailure(FailureKind.VALIDATION, "Valid start date is required")

        end = parse_calendar_date(end_date)
        if end is None:
            return PipelineFailure(FailureKind.VALIDATION, "Valid end date is required")

        if start > end:
            return PipelineFailure(FailureKind.VALIDATION, "Start date must be before end date")

        latest = self.now() + timedelta(days=self.MAX_DAYS_AHEAD)
        if datetime.combine(end, time.min, tzinfo=timezone.utc) > latest:
            return PipelineFailure(
                FailureKind.VALIDATION,
                f"End date cannot be more than {self.MAX_DAYS_AHEAD} days in the future",
            )

        return ValidatedRequest(location=trimmed, start_date=start, end_date=end)

    async def check_ownership(
        self,
        user_id: int,
        existing_id: Optional[int],
    ) -> Union[WeatherRecord, PipelineFailure]:
        if existing_id is None:
            return PipelineFailure(FailureKind.NOT_FOUND, self.NOT_FOUND_MESSAGE)
        record = await self.records.get_owned(existing_id, user_id)
        if record is None:
            return PipelineFailure(FailureKind.NOT_FOUND, self.NOT_FOUND_MESSAGE)
        return record

    @staticmethod
    def _gateway_failure(error: GatewayError) -> PipelineFailure:
        if isinstance(error, LocationNotFoundError):
            return PipelineFailure(FailureKind.LOCATION_NOT_FOUND, "Location not found")
        return PipelineFailure(FailureKind.UPSTREAM, "Failed to fetch weather data")

    async def fetch_forecast(self, request: ValidatedRequest) -> Union[ForecastPayload, PipelineFailure]:
        try:
            return await self.gateway.fetch_forecast(request.location, request.days_requested)
        except GatewayError as e:
            logger.exception("Forecast fetch failed for %r", request.location)
            return self._gateway_failure(e)

    async def resolve_location(self, request: ValidatedRequest) -> Union[LocationDetails, PipelineFailure]:
        try:
            return await self.gateway.resolve_location(request.location)
        except GatewayError as e:
            logger.exception("Location lookup failed for %r", request.location)
            return self._gateway_failure(e)

    async def persist(
        self,
        user_id: int,
        request: ValidatedRequest,
        forecast: ForecastPayload,
        details: LocationDetails,
        existing: Optional[WeatherRecord] = None,
    ) -> WeatherRecordOut:
        """
        Insert a new record or overwrite `existing` in full.

        The response is built from the freshly fetched payloads rather than
        re-read from storage.
        """
        weather_data = forecast.model_dump()
        maps_data = details.model_dump(exclude_none=True)

        if existing is None:
            record = await self.records.create(
                user_id=user_id,
                location=forecast.location,
                start_date=request.start_date,
                end_date=request.end_date,
                weather_data=weather_data,
                maps_data=maps_data,
            )
        else:
            record = await self.records.overwrite(
                existing,
                location=forecast.location,
                start_date=request.start_date,
                end_date=request.end_date,
                weather_data=weather_data,
                maps_data=maps_data,
            )

        out = WeatherRecordOut.model_validate(record)
        return out.model_copy(update={"weather_data": weather_data, "maps_data": maps_data})

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def submit(
        self,
        user_id: int,
        location: Optional[str],
        start_date: Optional[str],
        end_date: Optional[str],
        mode: SubmitMode = SubmitMode.CREATE,
        existing_id: Optional[int] = None,
    ) -> PipelineResult:
        validated = self.validate(location, start_date, end_date)
        if isinstance(validated, PipelineFailure):
            return PipelineResult.fail(validated)

        existing = None
        if mode == SubmitMode.UPDATE:
            owned = await self.check_ownership(user_id, existing_id)
            if isinstance(owned, PipelineFailure):
                return PipelineResult.fail(owned)
            existing = owned

        logger.info(
            "%s weather record for user %s: %s %s..%s (%d days)",
            "Creating" if existing is None else "Updating",
            user_id,
            validated.location,
            validated.start_date,
            validated.end_date,
            validated.days_requested,
        )

        forecast = await self.fetch_forecast(validated)
        if isinstance(forecast, PipelineFailure):
            return PipelineResult.fail(forecast)

        details = await self.resolve_location(validated)
        if isinstance(details, PipelineFailure):
            return PipelineResult.fail(details)

        record = await self.persist(user_id, validated, forecast, details, existing)
        logger.info("Weather record %s saved", record.id)
        return PipelineResult.success(record)
