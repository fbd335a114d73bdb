import logging
import sys

NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "sqlalchemy.orm", "httpx", "httpcore", "asyncio")


def configure_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging.

    Log records go to stdout; chatty third-party loggers are capped at WARNING
    so request logs stay readable.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
