"""
Storefront Event Dispatcher - single consumer of storefront events.

Storefront adapters publish events; one loop hands each event to the
product query or the reconciler. Tests can call dispatch() directly with
synthetic events.
"""

import asyncio

from structlog import get_logger

from purchasekit.models.events import (
    ProductsReceived,
    ProductsRequestFailed,
    StorefrontEvent,
    TransactionsUpdated,
)
from purchasekit.services.product_query import ProductQuery
from purchasekit.services.reconciler import TransactionReconciler

logger = get_logger(__name__)


class StorefrontEventDispatcher:
    """Queue of storefront events drained by run()."""

    def __init__(self, product_query: ProductQuery, reconciler: TransactionReconciler) -> None:
        self.product_query = product_query
        self.reconciler = reconciler
        self._queue: asyncio.Queue[StorefrontEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: StorefrontEvent) -> None:
        """Enqueue an event from the event loop's thread."""
        if self._closed:
            logger.warning("event_dropped_after_close", event_type=type(event).__name__)
            return
        self._queue.put_nowait(event)

    def publish_threadsafe(self, loop: asyncio.AbstractEventLoop, event: StorefrontEvent) -> None:
        """Enqueue an event from a storefront SDK thread."""
        loop.call_soon_threadsafe(self.publish, event)

    def dispatch(self, event: StorefrontEvent) -> None:
        """Hand one event to its consumer."""
        if isinstance(event, ProductsReceived):
            logger.info("products_received", count=len(event.products))
            self.product_query.handle_products_received(event)
        elif isinstance(event, ProductsRequestFailed):
            self.product_query.handle_request_failed(event)
        elif isinstance(event, TransactionsUpdated):
            logger.info("transactions_updated", count=len(event.transactions))
            self.reconciler.handle_transactions(event.transactions)
        else:
            raise TypeError(f"Unknown storefront event: {type(event).__name__}")

    async def run(self) -> None:
        """Drain the queue until close() is called."""
        logger.info("event_dispatcher_started")
        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    break
                self.dispatch(event)
            except Exception:
                # A bad event must not stop delivery of the ones behind it
                logger.exception("event_dispatch_failed", event_type=type(event).__name__)
            finally:
                self._queue.task_done()
        logger.info("event_dispatcher_stopped")

    async def join(self) -> None:
        """Wait until every published event has been dispatched."""
        await self._queue.join()

    def close(self) -> None:
        """Stop run() after the events already queued."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)
