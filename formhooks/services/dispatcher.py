"""
Webhook Dispatcher

One invocation = one batch. Each run selects the oldest pending
notifications that still have attempts left, delivers them concurrently and
writes every outcome back independently.

Delivery is at-least-once. There is no per-record lock across runs: two
overlapping runs can select and deliver the same record, and receivers
de-duplicate on response_id. The store's conditional updates keep the
attempt count and terminal states consistent when that happens.
"""
import asyncio
from dataclasses import dataclass, asdict

from formhooks.logging_config import get_logger
from formhooks.models.base import utcnow
from formhooks.models.notification import NotificationStatus, WebhookNotification
from formhooks.routes.metrics import track_attempt, track_batch
from formhooks.sentry_config import capture_exception
from formhooks.services.delivery_client import DeliveryClient
from formhooks.services.notification_store import NotificationStore

MAX_ATTEMPTS = 3
BATCH_SIZE = 10

logger = get_logger(component="dispatcher")


@dataclass(frozen=True)
class DispatchSummary:
    """Counts for a single dispatcher run."""
    processed: int
    successful: int
    failed: int

    def to_dict(self) -> dict:
        return asdict(self)


class Dispatcher:
    """Batch worker that drains pending webhook notifications."""

    def __init__(
        self,
        store: NotificationStore,
        delivery_client: DeliveryClient,
        max_attempts: int = MAX_ATTEMPTS,
        batch_size: int = BATCH_SIZE
    ):
        self.store = store
        self.delivery_client = delivery_client
        self.max_attempts = max_attempts
        self.batch_size = batch_size

    async def run_batch(self) -> DispatchSummary:
        """
        Run one dispatch batch.
        
        Raises whatever the store raises while selecting the batch; the run
        is simply retried at the next invocation. Errors past that point are
        confined to the record they happened on.
        """
        try:
            notifications = await self.store.select_eligible(self.max_attempts, self.batch_size)
        except Exception:
            logger.exception("dispatch_selection_failed")
            track_batch("error")
            raise

        if not notifications:
            logger.info("dispatch_idle")
            track_batch("ok")
            return DispatchSummary(processed=0, successful=0, failed=0)

        results = await asyncio.gather(
            *(self.dispatch_one(notification) for notification in notifications),
            return_exceptions=True,
        )

        successful = 0
        for notification, result in zip(notifications, results):
            if isinstance(result, BaseException):
                logger.error(
                    "dispatch_record_error",
                    notification_id=notification.id,
                    error=repr(result),
                )
                capture_exception(result, notification_id=notification.id)
            elif result:
                successful += 1

        summary = DispatchSummary(
            processed=len(notifications),
            successful=successful,
            failed=len(notifications) - successful,
        )
        logger.info("dispatch_completed", **summary.to_dict())
        track_batch("ok")
        return summary

    async def dispatch_one(self, notification: WebhookNotification) -> bool:
        """
        Attempt delivery of one notification and record the outcome.
        
        Returns True if the endpoint accepted the delivery.
        """
        log = logger.bind(
            notification_id=notification.id,
            response_id=notification.response_id,
            attempt=notification.attempts + 1,
        )

        result = await self.delivery_client.deliver(notification.webhook_url, notification.payload)
        attempted_at = utcnow()

        if result.success:
            if not await self.store.mark_sent(notification, attempted_at):
                log.warning("dispatch_outcome_stale", outcome="sent")
            track_attempt("sent")
            return True

        status = await self.store.record_failure(
            notification,
            result.error or "delivery failed",
            self.max_attempts,
            attempted_at,
        )
        if status is None:
            log.warning("dispatch_outcome_stale", outcome="failed")
        elif status == NotificationStatus.FAILED:
            log.warning("webhook_exhausted", error=result.error, max_attempts=self.max_attempts)
            track_attempt("failed")
        else:
            log.info("webhook_retry_scheduled", error=result.error)
            track_attempt("retry")
        return False
