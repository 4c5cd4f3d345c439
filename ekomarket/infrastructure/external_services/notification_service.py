"""Order status notifications

Delivery (email, push) lives outside this service; the dispatcher here is
the seam. Notifications are fire-and-forget: a failure is logged and never
affects the order that triggered it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Set

from ...domain.events.order_events import OrderPlaced, OrderStatusChanged


logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):

    @abstractmethod
    async def order_placed(self, event: OrderPlaced) -> None:
        ...

    @abstractmethod
    async def order_status_changed(self, event: OrderStatusChanged) -> None:
        ...


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Default dispatcher: records the notice in the application log"""

    async def order_placed(self, event: OrderPlaced) -> None:
        logger.info(
            "Notify buyer %s: order %s placed, total %s",
            event.buyer_id, event.order_id, event.total_price,
        )

    async def order_status_changed(self, event: OrderStatusChanged) -> None:
        logger.info(
            "Notify buyer %s: order %s moved %s -> %s%s",
            event.buyer_id,
            event.order_id,
            event.previous_status.value,
            event.status.value,
            f" ({event.note})" if event.note else "",
        )


class NotificationPublisher:
    """Schedules dispatcher calls in the background for committed events"""

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher
        self._tasks: Set[asyncio.Task] = set()

    def publish(self, events: Iterable) -> None:
        for event in events:
            if isinstance(event, OrderStatusChanged):
                coro = self.dispatcher.order_status_changed(event)
            elif isinstance(event, OrderPlaced):
                coro = self.dispatcher.order_placed(event)
            else:
                continue
            task = asyncio.create_task(self._deliver(coro, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _deliver(self, coro, event) -> None:
        try:
            await coro
        except Exception:
            logger.exception("Notification for order %s failed", event.order_id)

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown and tests)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
