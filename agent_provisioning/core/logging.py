"""
Logging configuration for the Agent Provisioning service
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

APP_LOGGER = "agent_provisioning"

# Client libraries that log every request (Twilio logs full request bodies)
NOISY_LOGGERS = ("twilio.http_client", "httpx", "httpcore", "asyncio")


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for the application

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    from .config import settings

    log_level = level or settings.log_level

    # Create formatter
    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Add console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Provider SDKs stay at WARNING unless debugging
    library_level = logging.DEBUG if settings.debug else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    # Create application logger
    logger = logging.getLogger(APP_LOGGER)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module

    Args:
        name: Name of the module (already-qualified names are kept as is)

    Returns:
        Logger instance
    """
    if name == APP_LOGGER or name.startswith(f"{APP_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER}.{name}")


class RunLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with the provisioning run and company they belong to"""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[run={self.extra['run_id']} company={self.extra['company_id']}] {msg}", kwargs


def get_run_logger(name: str, run_id: str, company_id: int) -> RunLoggerAdapter:
    """Get a module logger bound to one provisioning run"""
    return RunLoggerAdapter(get_logger(name), {"run_id": run_id, "company_id": company_id})
