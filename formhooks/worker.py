"""
ARQ scheduler for the webhook dispatcher.

Runs one dispatcher batch per cron tick. Each tick is an independent
invocation: a failed tick is logged and the next tick tries again.

    arq formhooks.worker.WorkerSettings      # scheduled
    python -m formhooks.worker               # single batch, for system cron
"""
import asyncio

from arq import cron
from arq.connections import RedisSettings

from formhooks.config import settings
from formhooks.logging_config import configure_logging, get_logger
from formhooks.pipeline import build_pipeline
from formhooks.sentry_config import capture_exception, configure_sentry

log = get_logger(component="worker")


async def startup(ctx: dict):
    """Build the pipeline once for the lifetime of the worker."""
    configure_logging()
    configure_sentry()
    ctx["pipeline"] = build_pipeline(settings)
    log.info("worker_started", batch_size=settings.WEBHOOK_BATCH_SIZE)


async def shutdown(ctx: dict):
    pipeline = ctx.get("pipeline")
    if pipeline is not None:
        await pipeline.close()


async def dispatch_webhooks(ctx: dict) -> dict:
    """Run one dispatcher batch and return its summary."""
    try:
        summary = await ctx["pipeline"].dispatcher.run_batch()
    except Exception as e:
        capture_exception(e, job="dispatch_webhooks")
        raise
    return summary.to_dict()


class WorkerSettings:
    """Settings for ARQ worker - use with 'arq formhooks.worker.WorkerSettings'"""
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    on_startup = startup
    on_shutdown = shutdown
    functions = [dispatch_webhooks]
    cron_jobs = [
        cron(
            dispatch_webhooks,
            minute=set(range(0, 60, max(settings.DISPATCH_INTERVAL_MINUTES, 1))),
            run_at_startup=True,
        )
    ]
    # Longer than a full batch of timed-out deliveries
    job_timeout = int(settings.WEBHOOK_TIMEOUT_SECONDS * 2) + 30


async def main():
    """Run a single dispatcher batch and exit."""
    ctx: dict = {}
    await startup(ctx)
    try:
        summary = await dispatch_webhooks(ctx)
        log.info("dispatch_run_finished", **summary)
    finally:
        await shutdown(ctx)


if __name__ == "__main__":
    asyncio.run(main())
