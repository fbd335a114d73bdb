from weather_records.models.base import Base
from weather_records.models.user import User
from weather_records.models.weather_record import WeatherRecord

__all__ = ["Base", "User", "WeatherRecord"]
