"""
Transaction Reconciler - applies storefront transaction events to local state.

The storefront redelivers every transaction until it is finished, so each
step here is idempotent. A transaction is only finished after its effect on
local state has been made durable.
"""

import asyncio
from collections.abc import Iterable

from structlog import get_logger

from purchasekit.exceptions import FlagStoreError, StorefrontError
from purchasekit.models.domain import PurchaseOutcome, Transaction, TransactionState
from purchasekit.observability.logging import log_context
from purchasekit.observability.metrics import metrics
from purchasekit.services.notifications import NotificationCenter
from purchasekit.services.purchase_state import PurchaseStateStore
from purchasekit.services.storefront import Storefront

logger = get_logger(__name__)


class TransactionReconciler:
    """Classifies transactions, grants ownership and finishes them with the storefront."""

    def __init__(
        self,
        state_store: PurchaseStateStore,
        storefront: Storefront,
        notifications: NotificationCenter,
    ) -> None:
        self.state_store = state_store
        self.storefront = storefront
        self.notifications = notifications
        self._pending: dict[str, list[asyncio.Future[PurchaseOutcome]]] = {}

    def expect_outcome(self, product_id: str) -> "asyncio.Future[PurchaseOutcome]":
        """
        Future resolved by the next terminal transaction for product_id.

        Used by the purchase flow to return a result to the caller that
        initiated the payment.
        """
        future: asyncio.Future[PurchaseOutcome] = asyncio.get_running_loop().create_future()
        self._pending.setdefault(product_id, []).append(future)
        future.add_done_callback(lambda done: self._discard(product_id, done))
        return future

    def _discard(self, product_id: str, future: "asyncio.Future[PurchaseOutcome]") -> None:
        waiters = self._pending.get(product_id)
        if waiters is None:
            return
        if future in waiters:
            waiters.remove(future)
        if not waiters:
            del self._pending[product_id]

    @property
    def pending_product_ids(self) -> frozenset[str]:
        """Products with a purchase caller still waiting for an outcome."""
        return frozenset(self._pending)

    def handle_transactions(self, transactions: Iterable[Transaction]) -> list[PurchaseOutcome]:
        """
        Reconcile a batch of transactions in delivery order.

        A transaction that cannot be processed is left unfinished and the
        rest of the batch continues.
        """
        outcomes: list[PurchaseOutcome] = []
        for transaction in transactions:
            outcome = self.reconcile(transaction)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    def reconcile(self, transaction: Transaction) -> PurchaseOutcome | None:
        """
        Reconcile one transaction.

        Returns:
            The terminal outcome, or None when the transaction was ignored
            or could not be processed
        """
        with log_context(
            transaction_id=transaction.transaction_id,
            transaction_state=transaction.state.value,
        ):
            try:
                if transaction.state == TransactionState.PURCHASED:
                    logger.info("completing_transaction", product_id=transaction.product_id)
                    return self._grant(transaction)
                elif transaction.state == TransactionState.RESTORED:
                    logger.info(
                        "restoring_transaction", product_id=transaction.granted_product_id
                    )
                    return self._grant(transaction)
                elif transaction.state == TransactionState.FAILED:
                    return self._fail(transaction)
            except (FlagStoreError, StorefrontError) as exc:
                logger.error(
                    "transaction_left_unfinished",
                    product_id=transaction.granted_product_id,
                    error=str(exc),
                )
                metrics.record_transaction(transaction.state.value, "unfinished")
                metrics.record_error(type(exc).__name__, "reconcile")
                return None
            except Exception as exc:
                # Storefront adapters may raise their SDK's own errors
                logger.exception(
                    "transaction_left_unfinished",
                    product_id=transaction.granted_product_id,
                )
                metrics.record_transaction(transaction.state.value, "unfinished")
                metrics.record_error(type(exc).__name__, "reconcile")
                return None

            # Purchasing and deferred are not terminal; they are not finished either
            logger.debug("transaction_ignored", product_id=transaction.product_id)
            metrics.record_transaction(transaction.state.value, "ignored")
            return None

    def _grant(self, transaction: Transaction) -> PurchaseOutcome:
        product_id = transaction.granted_product_id
        self.state_store.mark_owned(product_id)
        self.storefront.finish_transaction(transaction)
        metrics.record_transaction(transaction.state.value, "finished")

        outcome = PurchaseOutcome(
            product_id=product_id,
            transaction_id=transaction.transaction_id,
            state=transaction.state,
        )
        self._resolve(product_id, outcome)
        if transaction.product_id != product_id:
            self._resolve(transaction.product_id, outcome)
        return outcome

    def _fail(self, transaction: Transaction) -> PurchaseOutcome:
        error = transaction.error
        if error is None or not error.is_cancelled:
            logger.error(
                "transaction_failed",
                product_id=transaction.product_id,
                code=error.code if error else None,
                description=error.description if error else "",
            )
        else:
            logger.info("transaction_cancelled", product_id=transaction.product_id)

        self.storefront.finish_transaction(transaction)
        metrics.record_transaction(transaction.state.value, "finished")
        self.notifications.post_purchase_failed()

        outcome = PurchaseOutcome(
            product_id=transaction.product_id,
            transaction_id=transaction.transaction_id,
            state=transaction.state,
            error=error,
        )
        self._resolve(transaction.product_id, outcome)
        return outcome

    def _resolve(self, product_id: str, outcome: PurchaseOutcome) -> None:
        for future in self._pending.pop(product_id, []):
            if not future.done():
                future.set_result(outcome)
