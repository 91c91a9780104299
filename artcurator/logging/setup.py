"""Process-wide logging configuration for scripts and embedding services."""

import logging

# Third-party loggers that flood INFO output
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.dialects",
    "aiosqlite",
    "httpcore",
    "httpx",
    "asyncio",
)


def configure_logging(level: int | str = logging.INFO, force: bool = False) -> None:
    """Configure root logging with the standard format and quiet noisy libraries."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
