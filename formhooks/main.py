"""
formhooks - form response webhook delivery service

FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formhooks.config import settings
from formhooks.logging_config import configure_logging
from formhooks.sentry_config import configure_sentry
from formhooks.middleware.logging import LoggingMiddleware
from formhooks.pipeline import Pipeline, build_pipeline
from formhooks.routes.metrics import router as metrics_router
from formhooks.routes.webhooks import router as webhooks_router
from formhooks.routes.forms import router as forms_router
from formhooks.routes.clients import router as clients_router


def attach_pipeline(app: FastAPI, pipeline: Pipeline):
    """Expose pipeline components to route dependencies."""
    app.state.pipeline = pipeline
    app.state.session_factory = pipeline.session_factory
    app.state.dispatcher = pipeline.dispatcher
    app.state.relay = pipeline.relay
    app.state.response_service = pipeline.response_service


def create_app(pipeline: Pipeline | None = None) -> FastAPI:
    """
    Build the application.
    
    With no pipeline, one is constructed from settings at startup and
    closed at shutdown. A pipeline passed in is owned by the caller.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if pipeline is not None:
            yield
            return
        owned = build_pipeline(settings)
        attach_pipeline(app, owned)
        try:
            yield
        finally:
            await owned.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Durable, at-least-once webhook delivery for recorded form responses",
        lifespan=lifespan,
    )

    if pipeline is not None:
        attach_pipeline(app, pipeline)

    # Add logging middleware FIRST (runs before other middleware)
    app.add_middleware(LoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(metrics_router)
    app.include_router(webhooks_router)
    app.include_router(forms_router)
    app.include_router(clients_router)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running"
        }

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {"status": "healthy"}

    return app


# Initialize logging first
configure_logging()

# Initialize Sentry (if SENTRY_DSN is set)
configure_sentry()

app = create_app()
