from __future__ import annotations

import logging
import sys

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Настраивает корневой логгер приложения."""

    settings = get_settings()
    resolved = (level or settings.log_level or "INFO").upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(resolved)

    # httpx пишет каждую строку запроса на INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["setup_logging"]
