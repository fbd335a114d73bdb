from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordRequest(BaseModel):
    """
    Request body for creating or replacing a weather record.

    Dates are accepted as raw strings; the record pipeline validates them
    in a fixed order and reports the first violated rule.
    """

    location: Optional[str] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")

    model_config = ConfigDict(populate_by_name=True)


class WeatherRecordOut(BaseModel):
    """
    Public representation of a stored weather record.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    location: str
    start_date: date
    end_date: date
    weather_data: Dict[str, Any] = Field(default_factory=dict)
    maps_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecordResponse(BaseModel):
    message: str
    record: WeatherRecordOut


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class RecordListResponse(BaseModel):
    """
    Response payload for listing a user's records with pagination.
    """

    records: list[WeatherRecordOut] = Field(default_factory=list)
    pagination: Pagination


class MessageResponse(BaseModel):
    message: str
