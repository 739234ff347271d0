"""
Notification Center - observable, replayable channel for purchase events.
"""

from collections import deque
from collections.abc import Callable

from structlog import get_logger

from purchasekit.models.events import Notification, NotificationType

logger = get_logger(__name__)

NotificationCallback = Callable[[Notification], None]


class NotificationCenter:
    """
    Posts notifications to subscribers and keeps a bounded history.

    Subscribers registered late may ask for the history to be replayed
    before live delivery starts.
    """

    def __init__(self, history_size: int = 100) -> None:
        if history_size <= 0:
            raise ValueError(f"History size must be positive: {history_size}")
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._subscribers: list[NotificationCallback] = []

    @property
    def history(self) -> tuple[Notification, ...]:
        """Notifications posted so far, oldest first, bounded by history_size."""
        return tuple(self._history)

    def subscribe(
        self,
        callback: NotificationCallback,
        *,
        replay: bool = False,
    ) -> Callable[[], None]:
        """
        Register an observer.

        Args:
            callback: Called with each posted Notification
            replay: Deliver the retained history to callback first

        Returns:
            Function that removes the subscription
        """
        if replay:
            for notification in tuple(self._history):
                self._deliver(callback, notification)
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def post(self, notification: Notification) -> None:
        """Record and deliver a notification to every subscriber."""
        self._history.append(notification)
        logger.debug(
            "notification_posted",
            type=notification.type.value,
            product_id=notification.product_id,
            subscribers=len(self._subscribers),
        )
        for callback in tuple(self._subscribers):
            self._deliver(callback, notification)

    def post_purchased(self, product_id: str) -> None:
        self.post(Notification(type=NotificationType.PURCHASED, product_id=product_id))

    def post_purchase_failed(self) -> None:
        self.post(Notification(type=NotificationType.PURCHASE_FAILED))

    @staticmethod
    def _deliver(callback: NotificationCallback, notification: Notification) -> None:
        # One broken observer must not stop delivery to the others
        try:
            callback(notification)
        except Exception:
            logger.exception(
                "notification_subscriber_failed",
                type=notification.type.value,
            )
