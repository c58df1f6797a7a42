"""Logging configuration"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from api.core.config import Settings

DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"

# Loggers that would otherwise log once per storefront page view
NOISY_LOGGERS = ("uvicorn.access", "httpx")


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=Console(force_terminal=True, width=120),
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        tracebacks_width=120,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt=DATE_FORMAT))
    return handler


def setup_logging(settings: Settings) -> None:
    """Route all logging through a Rich handler at the configured level"""
    level = getattr(logging, settings.log_level, logging.INFO)

    # force=True: uvicorn configures the root logger first
    logging.basicConfig(level=level, datefmt=DATE_FORMAT, handlers=[_rich_handler()], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging: {settings.log_level} | Env: {settings.environment}"
    )
