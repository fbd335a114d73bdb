from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from weather_records.models import Base


class Database:
    """
    Owns the asynchronous SQLAlchemy engine and session factory.

    A single instance is built when the application is created and shared
    by reference through `app.state.database`. Its lifecycle is driven by
    the application lifespan:

    - `create_all()` on startup creates missing tables.
    - `dispose()` on shutdown closes pooled connections.
    """

    def __init__(self, url: str, **engine_kwargs):
        # Validates connections before using them
        engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)

        # `expire_on_commit=False` keeps ORM objects usable after commit,
        # which is convenient when returning data from repositories.
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """
        Create all tables defined by the ORM models if they do not exist.

        Suitable for development and small deployments; schema changes in
        production should go through a migration tool such as Alembic.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session


# ---------------------------------------------------------------------
# Dependency injection
# ---------------------------------------------------------------------

async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that provides an asynchronous database session.

    A new `AsyncSession` is created for each request from the application's
    `Database` and automatically closed once the request lifecycle ends.

    Usage example:
    ```python
    @router.get("/items")
    async def list_items(db: AsyncSession = Depends(get_db)):
        ...
    ```
    """
    database: Database = request.app.state.database
    async for session in database.session():
        yield session
