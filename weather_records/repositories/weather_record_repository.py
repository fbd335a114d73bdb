from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.models.user import utcnow
from weather_records.models.weather_record import WeatherRecord


class WeatherRecordRepository:
    """
    Repository for managing weather record persistence.

    Every query is scoped to an owning user: a record that exists but
    belongs to someone else is indistinguishable from a missing one.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with an active database session.

        Args:
            db: Asynchronous SQLAlchemy session.
        """
        self.db = db

    @staticmethod
    def _newest_first(stmt):
        return stmt.order_by(WeatherRecord.created_at.desc(), WeatherRecord.id.desc())

    async def get_owned(self, record_id: int, user_id: int) -> Optional[WeatherRecord]:
        """
        Return the record if it exists and is owned by `user_id`, else None.
        """
        stmt = select(WeatherRecord).where(
            WeatherRecord.id == record_id,
            WeatherRecord.user_id == user_id,
        )
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def create(
        self,
        user_id: int,
        location: str,
        start_date: date,
        end_date: date,
        weather_data: dict,
        maps_data: dict,
    ) -> WeatherRecord:
        """
        Insert a new record and commit.

        Returns:
            The newly created `WeatherRecord` with its generated id.
        """
        record = WeatherRecord(
            user_id=user_id,
            location=location,
            start_date=start_date,
            end_date=end_date,
            weather_data=weather_data,
            maps_data=maps_data,
        )
        self.db.add(record)
        await self.db.commit()
        return record

    async def overwrite(
        self,
        record: WeatherRecord,
        location: str,
        start_date: date,
        end_date: date,
        weather_data: dict,
        maps_data: dict,
    ) -> WeatherRecord:
        """
        Replace location, dates and both payloads of an existing record.

        Payloads are assigned as new objects so the JSON columns are always
        written in full.
        """
        record.location = location
        record.start_date = start_date
        record.end_date = end_date
        record.weather_data = weather_data
        record.maps_data = maps_data
        record.updated_at = utcnow()
        await self.db.commit()
        return record

    async def delete_owned(self, record_id: int, user_id: int) -> bool:
        """
        Delete a record by id and owner.

        Returns:
            True if a row was deleted, False if no owned record matched.
        """
        stmt = delete(WeatherRecord).where(
            WeatherRecord.id == record_id,
            WeatherRecord.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount > 0

    async def list_page(self, user_id: int, limit: int, offset: int) -> Tuple[List[WeatherRecord], int]:
        """
        List a user's records newest-first with pagination.

        Returns:
            (records for the requested page, total records owned by the user)
        """
        stmt = self._newest_first(
            select(WeatherRecord).where(WeatherRecord.user_id == user_id)
        ).limit(limit).offset(offset)
        items = list((await self.db.execute(stmt)).scalars().all())

        count_stmt = select(func.count()).select_from(WeatherRecord).where(
            WeatherRecord.user_id == user_id
        )
        total = (await self.db.execute(count_stmt)).scalar_one()

        return items, int(total)

    async def list_all(self, user_id: int) -> List[WeatherRecord]:
        """
        Return every record owned by `user_id`, newest first.
        """
        stmt = self._newest_first(
            select(WeatherRecord).where(WeatherRecord.user_id == user_id)
        )
        res = await self.db.execute(stmt)
        return list(res.scalars().all())
