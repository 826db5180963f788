import logging
import os
import sys

from google.cloud.logging.handlers import StructuredLogHandler

from src.shared.config import log_settings

FORMAT = "%(asctime)s - [%(levelname)s] - %(name)s - %(message)s"


def _is_cloud() -> bool:
    return (
        log_settings.ENVIRONMENT.lower() in ("prod", "production", "cloud")
        or os.environ.get("K_SERVICE") is not None
    )


def _level() -> int:
    return getattr(logging, log_settings.LOG_LEVEL.upper(), logging.INFO)


def setup_logger(name: str) -> logging.Logger:
    """
    Configures and returns a logger.
    Uses Google Cloud Logging (StructuredLogHandler) when in cloud environment.
    """
    logger = logging.getLogger(name)

    # Remove existing handlers so repeated calls don't duplicate output
    if logger.hasHandlers():
        logger.handlers.clear()

    if _is_cloud():
        try:
            # StructuredLogHandler writes JSON to stdout, which the Cloud Run
            # agent picks up and parses (setting severity correctly).
            handler = StructuredLogHandler()
            logger.addHandler(handler)
            logger.propagate = False
            logger.setLevel(_level())
            return logger
        except Exception as e:
            print(f"Failed to setup Google Cloud Logging: {e}", file=sys.stderr)

    # Local Dev or Fallback: Standard StreamHandler
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(FORMAT))
    logger.addHandler(handler)
    logger.propagate = True
    logger.setLevel(_level())

    return logger


def get_logger(name: str) -> logging.Logger:
    return setup_logger(name)
