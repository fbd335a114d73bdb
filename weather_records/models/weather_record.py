from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from weather_records.models.base import Base
from weather_records.models.user import utcnow


class WeatherRecord(Base):
    """
    Weather record entity.

    A user-owned snapshot combining a location, a date range and the
    forecast fetched for it. Both payloads are stored as opaque JSON blobs:

    - `weather_data`: the forecast returned by the gateway for the record's
      current location and date range.
    - `maps_data`: resolved location metadata (city, state, country,
      formatted address and optional coordinates).

    Payloads are always replaced as a whole when the record is edited.
    """

    __tablename__ = "weather_records"

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Internal unique identifier for the record",
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner of the record",
    )

    location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Canonical location name as resolved by the weather provider",
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    weather_data: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        comment="Forecast payload as returned by the gateway",
    )

    maps_data: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Resolved location metadata",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    user = relationship(
        "User",
        back_populates="records",
    )

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    __table_args__ = (
        Index("idx_weather_records_user_id", "user_id"),
        Index("idx_weather_records_location", "location"),
    )
