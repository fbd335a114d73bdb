from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for the `users` and `weather_records` tables.

    Every ORM model registers itself in `Base.metadata`, which
    `Database.create_all()` uses at startup and the test suite uses to
    build its in-memory schema.
    """
    pass
