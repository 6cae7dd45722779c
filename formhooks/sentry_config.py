"""
Sentry configuration for error tracking.

Delivery and enqueue errors never propagate to their callers, so they
are forwarded here explicitly instead of surfacing as unhandled exceptions.
"""
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from formhooks.config import settings
from formhooks.logging_config import get_logger

log = get_logger(component="sentry")


def configure_sentry():
    """
    Initialize Sentry with FastAPI and SQLAlchemy integrations.
    
    Requires SENTRY_DSN environment variable to be set.
    """
    dsn = settings.SENTRY_DSN
    
    if not dsn:
        log.info("sentry_disabled")
        return
    
    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        environment=settings.ENVIRONMENT,
        release=settings.APP_VERSION,
    )
    
    log.info("sentry_initialized", environment=settings.ENVIRONMENT)


def capture_exception(exc_info=None, **tags):
    """
    Capture an exception to Sentry, tagged with pipeline context.
    
    Usage:
        try:
            ...
        except Exception:
            capture_exception(response_id=response_id)
    """
    if not sentry_sdk.get_client().is_active():
        return
    with sentry_sdk.new_scope() as scope:
        for key, value in tags.items():
            scope.set_tag(key, value)
        sentry_sdk.capture_exception(exc_info)
