"""
Logging configuration for Dentalogix Backend.

Uses structlog for structured logging with JSON output and file-based logging.
"""

import logging
import os
import sys
from datetime import datetime
from typing import Optional

import structlog
from structlog.stdlib import LoggerFactory

from core.config import Settings, settings as default_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _file_handler(path: str, level: int) -> logging.FileHandler:
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logging(config: Optional[Settings] = None) -> structlog.stdlib.BoundLogger:
    """Setup structured logging configuration with file-based logging."""
    config = config or default_settings

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if not config.DEBUG else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.LOG_LEVEL.upper()))
    root_logger.handlers.clear()

    # Console handler (always enabled)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    today = datetime.now().strftime('%Y%m%d')
    logs_dir = "logs"

    if config.ENABLE_FILE_LOGGING or config.ENABLE_REQUEST_LOGGING:
        os.makedirs(logs_dir, exist_ok=True)

    if config.ENABLE_FILE_LOGGING:
        root_logger.addHandler(_file_handler(os.path.join(logs_dir, f"app_{today}.log"), logging.INFO))
        root_logger.addHandler(_file_handler(os.path.join(logs_dir, f"error_{today}.log"), logging.ERROR))

    if config.ENABLE_REQUEST_LOGGING:
        request_logger = logging.getLogger("request")
        request_logger.setLevel(logging.INFO)
        # Keep request lines out of the app log
        request_logger.propagate = False
        request_logger.handlers.clear()
        request_logger.addHandler(_file_handler(os.path.join(logs_dir, f"requests_{today}.log"), logging.INFO))

    logger = structlog.get_logger()

    if config.SENTRY_DSN and config.SENTRY_DSN.strip():
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
        from sentry_sdk.integrations.celery import CeleryIntegration

        sentry_sdk.init(
            dsn=config.SENTRY_DSN,
            environment=config.SENTRY_ENVIRONMENT,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
                CeleryIntegration(),
            ],
            traces_sample_rate=0.1 if config.ENV == "production" else 1.0,
        )

        logger.info("Sentry integration enabled", environment=config.SENTRY_ENVIRONMENT)

    return logger


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)


async def log_request_middleware(request, call_next):
    """Log incoming requests and their status codes."""
    logger = get_logger("request")

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
    )

    return response
