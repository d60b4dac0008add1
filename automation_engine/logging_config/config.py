"""
Logging setup for the automation engine service.
"""

import logging
import os
import sys
from typing import Optional

from .formatters import SimpleCloudWatchFormatter, StructuredCloudWatchFormatter

STANDARD_FORMAT = "%(levelname)s:     %(asctime)s - %(name)s - [%(filename)s:%(lineno)d] - %(message)s"

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "urllib3",
    "asyncio",
    "watchfiles",
)


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Install a single stdout handler on the root logger.

    Args:
        service_name: Name of the service logger to return
        log_level: DEBUG, INFO, WARNING or ERROR; ``LOG_LEVEL`` wins when set
        log_format: "simple", "json" or "standard"; defaults to ``LOG_FORMAT``

    Returns:
        The service logger
    """
    if log_format is None:
        log_format = os.getenv("LOG_FORMAT", "simple")
    log_level = os.getenv("LOG_LEVEL", log_level).upper()
    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if log_format == "json":
        formatter: logging.Formatter = StructuredCloudWatchFormatter()
    elif log_format == "simple":
        formatter = SimpleCloudWatchFormatter()
    else:
        formatter = logging.Formatter(fmt=STANDARD_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    _configure_third_party_loggers()

    logger = logging.getLogger(service_name)
    logger.info(f"Logging configured for {service_name} with level={log_level}, format={log_format}")
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _configure_third_party_loggers() -> None:
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
    # Access logs only on errors
    logging.getLogger("uvicorn.access").setLevel(logging.ERROR)
