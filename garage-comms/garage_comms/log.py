"""
Structured Logging
==================
structlog setup for services embedding the library, plus helpers that
keep phone numbers, addresses and codes out of log lines.
"""

import logging
import sys
from typing import Optional

import structlog


def configure_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """
    Configure structlog for a service.

    Args:
        service_name: Name bound to every event (e.g., "garage-api")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines for production, console rendering otherwise
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=service_name)
    structlog.get_logger(__name__).info("logging_configured", level=level.upper())


def mask_phone(phone: Optional[str]) -> str:
    """Keep the last four digits: ``whatsapp:+919876543210`` -> ``***3210``."""
    if not phone:
        return ""
    digits = "".join(c for c in phone if c.isdigit())
    if len(digits) <= 4:
        return "***"
    return f"***{digits[-4:]}"


def mask_email(email: Optional[str]) -> str:
    """``customer@example.com`` -> ``c***@example.com``."""
    if not email or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"


def mask_code(code: Optional[str]) -> str:
    """Never log OTPs; only their length."""
    return "*" * len(code or "")
