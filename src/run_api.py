"""Run the Kronos API server."""

import logging
import multiprocessing

import uvicorn

from settings import settings


def worker_count() -> int:
    """One worker locally, otherwise 2 x cores + 1."""
    if settings.is_local:
        return 1
    return (2 * multiprocessing.cpu_count()) + 1


if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        workers=worker_count(),
        log_level=logging.getLevelName(settings.logging_level).lower(),
    )
