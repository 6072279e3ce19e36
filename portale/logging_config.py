from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this repo.

    Notes:
    - stdlib logging only; uvicorn already installs handlers, so this mainly sets levels.
    - Set `PORTALE_LOG_LEVEL=DEBUG` (or INFO/WARNING/ERROR) to control verbosity.
    """

    normalized = level.upper()
    logging.getLogger("portale").setLevel(normalized)
    # Child loggers under portale.* inherit this level.
    logging.getLogger("portale").propagate = True
