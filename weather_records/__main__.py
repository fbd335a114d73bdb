import uvicorn

from weather_records.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "weather_records.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
