"""NotificationHub for async notification delivery with retry.

Usage:
    from statuswatch.notifications.hub import NotificationHub, OutboundNotification

    hub = NotificationHub(channels={NotificationType.EMAIL: email_channel})
    await hub.start(num_workers=2)

    await hub.enqueue(OutboundNotification(NotificationType.EMAIL, "ops@example.com", note))

    await hub.stop()
"""

import asyncio
import logging
from dataclasses import dataclass

from statuswatch.models.alert_rule import NotificationType
from statuswatch.notifications.channels import Notification, NotificationChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundNotification:
    """A notification addressed to one destination on one channel."""

    channel_type: NotificationType
    destination: str
    notification: Notification


class NotificationHub:
    """Queue-based notification delivery.

    Background workers drain a bounded asyncio queue and deliver each item
    with exponential backoff retry. A delivery that exhausts its retries is
    logged against its recipient and dropped; it never affects other items.
    """

    def __init__(
        self,
        channels: dict[NotificationType, NotificationChannel],
        max_queue_size: int = 1000,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_multiplier: float = 2.0,
    ):
        """
        Args:
            channels: Delivery channel per notification type; missing types are skipped
            max_queue_size: Pending items before enqueue starts dropping
            max_retries: Delivery attempts per item, first attempt included
            retry_base_delay: Seconds to wait after the first failed attempt
            retry_multiplier: Growth factor of the wait between attempts
        """
        self.channels = channels
        self.max_queue_size = max_queue_size
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_multiplier = retry_multiplier

        self._queue: asyncio.Queue[OutboundNotification] = asyncio.Queue(maxsize=max_queue_size)
        self._workers: list[asyncio.Task[None]] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, num_workers: int = 2) -> None:
        self._running = True
        for worker_id in range(num_workers):
            task = asyncio.create_task(
                self._worker(worker_id), name=f"notification_worker_{worker_id}"
            )
            self._workers.append(task)
        logger.info("NotificationHub started with %d workers", num_workers)

    async def stop(self) -> None:
        """Stop all worker tasks; queued items that were not picked up are dropped."""
        self._running = False

        if not self._workers:
            return

        for worker in self._workers:
            worker.cancel()

        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        logger.info("NotificationHub stopped")

    async def enqueue(self, item: OutboundNotification) -> bool:
        """Add a notification to the delivery queue.

        Returns:
            True if queued, False if the queue was full and the item was dropped
        """
        try:
            self._queue.put_nowait(item)
            return True
        except asyncio.QueueFull:
            logger.warning(
                "Queue full, dropping %s notification to %s: %s",
                item.channel_type.value,
                item.destination,
                item.notification.subject,
            )
            return False

    async def _worker(self, worker_id: int) -> None:
        logger.debug("Worker %d starting", worker_id)
        while self._running:
            try:
                await self._process_one()
            except asyncio.CancelledError:
                logger.debug("Worker %d cancelled", worker_id)
                raise
            except Exception as e:
                logger.exception("Worker %d error processing notification: %s", worker_id, e)
        logger.debug("Worker %d stopped", worker_id)

    async def _process_one(self) -> None:
        try:
            # Timeout lets the loop observe _running periodically
            item = await asyncio.wait_for(self._queue.get(), timeout=1.0)
        except TimeoutError:
            return

        try:
            await self.deliver(item)
        finally:
            self._queue.task_done()

    async def deliver(self, item: OutboundNotification) -> bool:
        """Deliver one notification with exponential backoff retry.

        Retry delays follow base_delay * (multiplier ^ (attempt - 1)).

        Returns:
            True if delivery succeeded, False if the channel is unknown or
            all retries were exhausted
        """
        channel = self.channels.get(item.channel_type)
        if channel is None:
            logger.warning(
                "No %s channel configured, skipping notification to %s",
                item.channel_type.value,
                item.destination,
            )
            return False

        last_error: str | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                result = await channel.send(item.notification, item.destination)
                if result.success:
                    logger.debug(
                        "Notification '%s' delivered via %s to %s (attempt %d)",
                        item.notification.subject,
                        item.channel_type.value,
                        item.destination,
                        attempt,
                    )
                    return True
                last_error = result.error_message or "Unknown error"
            except Exception as e:
                last_error = str(e)

            logger.warning(
                "Notification to %s via %s failed (attempt %d/%d): %s",
                item.destination,
                item.channel_type.value,
                attempt,
                self.max_retries,
                last_error,
            )
            if attempt < self.max_retries:
                delay = self.retry_base_delay * (self.retry_multiplier ** (attempt - 1))
                await asyncio.sleep(delay)

        logger.error(
            "Failed to send notification '%s' to %s via %s after %d attempts: %s",
            item.notification.subject,
            item.destination,
            item.channel_type.value,
            self.max_retries,
            last_error,
        )
        return False

    async def drain(self) -> None:
        """Wait until every queued notification has been processed."""
        await self._queue.join()
