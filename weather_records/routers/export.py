from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.core.auth import CurrentUser, get_current_user
from weather_records.core.db import get_db
from weather_records.repositories.weather_record_repository import WeatherRecordRepository
from weather_records.services.export_service import ExportService, UnsupportedExportFormat

router = APIRouter(prefix="/export", tags=["Export"])


@router.get(
    "/{fmt}",
    summary="Export weather records",
    description=(
        "Downloads all of the caller's records, newest first, as `json`, `csv` or `xml`. "
        "Any other format returns 400."
    ),
    response_class=Response,
)
async def export_records(
    fmt: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await WeatherRecordRepository(db).list_all(user.user_id)
    try:
        export = ExportService().render(records, fmt)
    except UnsupportedExportFormat as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f"attachment; filename={export.filename}"},
    )
