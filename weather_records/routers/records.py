import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.core.auth import CurrentUser, get_current_user
from weather_records.core.db import get_db
from weather_records.core.deps import get_weather_gateway
from weather_records.repositories.weather_record_repository import WeatherRecordRepository
from weather_records.schemas.records import (
    MessageResponse,
    Pagination,
    RecordListResponse,
    RecordRequest,
    RecordResponse,
    WeatherRecordOut,
)
from weather_records.services.providers.openweather_client import OpenWeatherClient
from weather_records.services.record_pipeline import FailureKind, PipelineResult, RecordPipeline, SubmitMode

router = APIRouter(prefix="/weather-records", tags=["Weather records"])

NOT_FOUND = "Weather record not found"

FAILURE_STATUS = {
    FailureKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.LOCATION_NOT_FOUND: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FailureKind.UPSTREAM: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _unwrap(result: PipelineResult) -> WeatherRecordOut:
    if not result.ok:
        raise HTTPException(status_code=FAILURE_STATUS[result.failure.kind], detail=result.failure.message)
    return result.record


@router.post(
    "",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a weather record",
    description=(
        "Validates the date range, fetches the forecast and location details for "
        "`location`, and stores both with the record.\n\n"
        "- `startDate` must not be after `endDate`\n"
        "- `endDate` must be at most 14 days from now"
    ),
)
async def create_record(
    payload: RecordRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: OpenWeatherClient = Depends(get_weather_gateway),
):
    pipeline = RecordPipeline(db, gateway)
    result = await pipeline.submit(
        user.user_id,
        payload.location,
        payload.start_date,
        payload.end_date,
        mode=SubmitMode.CREATE,
    )
    return RecordResponse(message="Weather record created successfully", record=_unwrap(result))


@router.get(
    "",
    response_model=RecordListResponse,
    summary="List weather records",
    description="Returns the caller's records, newest first, with pagination.",
)
async def list_records(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repo = WeatherRecordRepository(db)
    items, total = await repo.list_page(user.user_id, limit=limit, offset=(page - 1) * limit)

    return RecordListResponse(
        records=[WeatherRecordOut.model_validate(x) for x in items],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit),
        ),
    )


@router.get(
    "/{record_id}",
    response_model=WeatherRecordOut,
    summary="Get a weather record",
)
async def get_record(
    record_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await WeatherRecordRepository(db).get_owned(record_id, user.user_id)
    if record is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return WeatherRecordOut.model_validate(record)


@router.put(
    "/{record_id}",
    response_model=RecordResponse,
    summary="Replace a weather record",
    description=(
        "Re-validates the request, re-fetches forecast and location details and "
        "overwrites the stored record. The previous payload is kept if fetching fails."
    ),
)
async def update_record(
    record_id: int,
    payload: RecordRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: OpenWeatherClient = Depends(get_weather_gateway),
):
    pipeline = RecordPipeline(db, gateway)
    result = await pipeline.submit(
        user.user_id,
        payload.location,
        payload.start_date,
        payload.end_date,
        mode=SubmitMode.UPDATE,
        existing_id=record_id,
    )
    return RecordResponse(message="Weather record updated successfully", record=_unwrap(result))


@router.delete(
    "/{record_id}",
    response_model=MessageResponse,
    summary="Delete a weather record",
)
async def delete_record(
    record_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await WeatherRecordRepository(db).delete_owned(record_id, user.user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return MessageResponse(message="Weather record deleted successfully")
