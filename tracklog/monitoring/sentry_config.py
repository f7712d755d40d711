"""Sentry configuration and helpers"""
import logging
from typing import Any
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from tracklog.config import ENABLE_SENTRY, SENTRY_DSN, SENTRY_ENVIRONMENT, SENTRY_TRACES_SAMPLE_RATE

logger = logging.getLogger(__name__)


def init_sentry() -> None:
    """Initialize Sentry SDK with FastAPI integration"""
    if not ENABLE_SENTRY:
        logger.info("Sentry monitoring disabled")
        return

    if not SENTRY_DSN:
        logger.warning("Sentry enabled but SENTRY_DSN not configured")
        return

    try:
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            environment=SENTRY_ENVIRONMENT,
            traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(
                    level=logging.INFO,
                    event_level=logging.ERROR
                ),
            ],
        )

        logger.info(
            f"Sentry initialized: environment={SENTRY_ENVIRONMENT}, "
            f"sample_rate={SENTRY_TRACES_SAMPLE_RATE}"
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)


def capture_exception(exception: Exception, **extra_context: Any) -> None:
    """Capture exception with custom context"""
    if not ENABLE_SENTRY:
        return

    try:
        # Add extra context as tags
        for key, value in extra_context.items():
            sentry_sdk.set_tag(key, str(value))

        sentry_sdk.capture_exception(exception)
    except Exception as e:
        logger.error(f"Failed to capture exception in Sentry: {e}")
