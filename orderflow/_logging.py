"""
Logging — structlog setup shared by every component.

    configure_logging(get_settings())
    log = structlog.get_logger(__name__)
    log.warning("carrier_rate_failed", carrier="ups", error="timeout")
"""

import logging

import structlog

from orderflow.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog once at process start."""
    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


__all__ = ("configure_logging",)
