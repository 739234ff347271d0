"""
Purchase Manager - the single coordinator for purchase state.

Constructed once at startup and passed to every call site. Owns the catalog,
the purchase state store, the receipt validator, the product query, the
transaction reconciler, the notification center and the event dispatcher.
"""

import asyncio
from types import TracebackType

from structlog import get_logger

from purchasekit.config import Settings, get_settings
from purchasekit.exceptions import ManagerClosedError, PaymentsDisabledError
from purchasekit.models.domain import (
    LoadResult,
    Payment,
    Product,
    ProductsResult,
    PurchaseOutcome,
    PurchaseStatus,
)
from purchasekit.models.events import StorefrontEvent
from purchasekit.services.catalog import CatalogRegistry
from purchasekit.services.dispatcher import StorefrontEventDispatcher
from purchasekit.services.flag_store import FlagStore, InMemoryFlagStore, JsonFileFlagStore
from purchasekit.services.notifications import NotificationCenter
from purchasekit.services.product_query import ProductQuery
from purchasekit.services.purchase_state import PurchaseStateStore
from purchasekit.services.receipt_source import FileReceiptSource, ReceiptSource
from purchasekit.services.receipt_validator import ReceiptValidator
from purchasekit.services.reconciler import TransactionReconciler
from purchasekit.services.storefront import Storefront

logger = get_logger(__name__)


class PurchaseManager:
    """
    Client-side purchase management.

    Usage:
        async with PurchaseManager(storefront, flag_store) as manager:
            manager.add_products({"pro_upgrade", "remove_ads"})
            await manager.load_purchased_products(check_with_remote=True)
            result = await manager.request_products()
            outcome = await manager.purchase_product(result.products[0])
    """

    def __init__(
        self,
        storefront: Storefront,
        flag_store: FlagStore | None = None,
        *,
        validator: ReceiptValidator | None = None,
        notifications: NotificationCenter | None = None,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            storefront: Storefront adapter; also the receipt source unless a
                validator or settings.receipt_path is supplied
            flag_store: Durable ownership flags; built from settings when omitted
            validator: Receipt validator; built from settings when omitted
            notifications: Notification center; built from settings when omitted
            settings: Configuration (defaults to the global settings)
        """
        self.settings = settings or get_settings()
        self.storefront = storefront

        self.catalog = CatalogRegistry()
        self.notifications = notifications or NotificationCenter(
            history_size=self.settings.notification_history_size
        )
        self.validator = validator or ReceiptValidator(
            self._default_receipt_source(),
            production_url=self.settings.production_verify_url,
            sandbox_url=self.settings.sandbox_verify_url,
            timeout=self.settings.verify_timeout_seconds,
            max_sandbox_redirects=self.settings.max_sandbox_redirects,
        )
        self.state = PurchaseStateStore(
            self.catalog,
            flag_store or self._default_flag_store(),
            self.validator,
            self.notifications,
        )
        self.product_query = ProductQuery(self.catalog, storefront)
        self.reconciler = TransactionReconciler(self.state, storefront, self.notifications)
        self.dispatcher = StorefrontEventDispatcher(self.product_query, self.reconciler)

        self._dispatch_task: asyncio.Task[None] | None = None
        self._closed = False

    def _default_receipt_source(self) -> ReceiptSource:
        if self.settings.receipt_path:
            return FileReceiptSource(self.settings.receipt_path)
        return self.storefront

    def _default_flag_store(self) -> FlagStore:
        if self.settings.flag_store_path:
            return JsonFileFlagStore(self.settings.flag_store_path)
        logger.warning("flag_store_in_memory")
        return InMemoryFlagStore()

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """Start consuming published storefront events."""
        if self._closed:
            raise ManagerClosedError()
        if self._dispatch_task is None:
            self._dispatch_task = asyncio.create_task(self.dispatcher.run())
            logger.info("purchase_manager_started")

    async def aclose(self) -> None:
        """Stop the dispatch loop and release the HTTP client."""
        if self._closed:
            return
        self._closed = True
        self.dispatcher.close()
        if self._dispatch_task is not None:
            await self._dispatch_task
            self._dispatch_task = None
        await self.validator.aclose()
        logger.info("purchase_manager_closed")

    async def __aenter__(self) -> "PurchaseManager":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ========================================================================
    # Catalog
    # ========================================================================

    def add_product(self, product_id: str) -> None:
        self.catalog.add_product(product_id)

    def add_products(self, product_ids: set[str] | frozenset[str]) -> None:
        self.catalog.add_products(product_ids)

    # ========================================================================
    # Purchase state
    # ========================================================================

    async def load_purchased_products(self, check_with_remote: bool = False) -> LoadResult:
        """
        Load ownership flags for registered products.

        Args:
            check_with_remote: Also validate the receipt with the verification service
        """
        result = await self.state.load(check_with_remote=check_with_remote)
        if result.validation is not None:
            if result.validation.is_valid:
                logger.info("receipt_is_valid")
            else:
                logger.warning(
                    "receipt_is_not_valid",
                    outcome=result.validation.outcome.value,
                    reason=result.validation.reason,
                )
        return result

    def is_purchased(self, product_id: str) -> PurchaseStatus:
        return self.state.is_purchased(product_id)

    # ========================================================================
    # Storefront flows
    # ========================================================================

    async def request_products(self) -> ProductsResult:
        """Request metadata for every registered product."""
        self._ensure_open()
        return await self.product_query.request_products()

    def can_make_purchase(self) -> bool:
        """Check if the user can make purchases on this device."""
        return self.storefront.can_make_payments()

    async def purchase_product(self, product: Product | str) -> PurchaseOutcome:
        """
        Initiate a purchase and wait for its terminal transaction.

        The same outcome is also visible to observers through the
        notification center. Deferred purchases keep the caller waiting;
        wrap the call in asyncio.wait_for to bound it.

        Raises:
            PaymentsDisabledError: If the device cannot make payments
        """
        self._ensure_open()
        product_id = product.product_id if isinstance(product, Product) else product
        if not self.can_make_purchase():
            logger.warning("payments_disabled", product_id=product_id)
            raise PaymentsDisabledError()

        outcome = self.reconciler.expect_outcome(product_id)
        logger.info("purchasing_product", product_id=product_id)
        try:
            self.storefront.add_payment(Payment(product_id=product_id))
        except Exception:
            outcome.cancel()
            raise
        return await outcome

    def restore_completed_transactions(self) -> None:
        """Ask the storefront to redeliver completed purchases as restored transactions."""
        self._ensure_open()
        logger.info("restoring_completed_transactions")
        self.storefront.restore_completed_transactions()

    # ========================================================================
    # Event intake
    # ========================================================================

    def publish(self, event: StorefrontEvent) -> None:
        """Queue a storefront event for the dispatch loop."""
        self.dispatcher.publish(event)

    def dispatch(self, event: StorefrontEvent) -> None:
        """Process a storefront event immediately, bypassing the queue."""
        self.dispatcher.dispatch(event)

    def _ensure_open(self) -> None:
        if self._closed:
            raise ManagerClosedError()
