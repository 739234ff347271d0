"""
Purchase State Store - what this device believes it owns.

The durable flag store is the source of truth. An identifier only enters the
in-memory owned set after its flag has been written and synchronized.
"""

import asyncio

from structlog import get_logger

from purchasekit.exceptions import FlagStoreError
from purchasekit.models.domain import LoadResult, PurchaseStatus, ValidationResult
from purchasekit.services.catalog import CatalogRegistry
from purchasekit.services.flag_store import FlagStore
from purchasekit.services.notifications import NotificationCenter
from purchasekit.services.receipt_validator import ReceiptValidator

logger = get_logger(__name__)


class PurchaseStateStore:
    """Owned products, durable ownership flags and last known receipt validity."""

    def __init__(
        self,
        catalog: CatalogRegistry,
        flag_store: FlagStore,
        validator: ReceiptValidator,
        notifications: NotificationCenter,
    ) -> None:
        self.catalog = catalog
        self.flag_store = flag_store
        self.validator = validator
        self.notifications = notifications
        self._owned: set[str] = set()
        self._has_valid_receipt = False
        self._last_validation: ValidationResult | None = None
        self._validation_lock = asyncio.Lock()

    @property
    def owned_product_ids(self) -> frozenset[str]:
        return frozenset(self._owned)

    @property
    def has_valid_receipt(self) -> bool:
        """Last known validation verdict. Stale between validations."""
        return self._has_valid_receipt

    @property
    def last_validation(self) -> ValidationResult | None:
        return self._last_validation

    def load_owned(self) -> frozenset[str]:
        """
        Read the durable flag of every registered product into the owned set.

        Makes no claim about receipt validity.
        """
        for product_id in sorted(self.catalog.product_ids):
            if self.flag_store.get_bool(product_id):
                self._owned.add(product_id)
                logger.info("product_owned", product_id=product_id)
            else:
                logger.debug("product_not_owned", product_id=product_id)
        return self.owned_product_ids

    async def load(self, check_with_remote: bool = False) -> LoadResult:
        """
        Load owned products, optionally validating the receipt remotely.

        Args:
            check_with_remote: Also validate the receipt with the verification service

        Returns:
            Owned products; `validation` is None when no check was requested
        """
        owned = self.load_owned()
        if not check_with_remote:
            return LoadResult(owned=owned)

        logger.info("checking_receipt_with_remote")
        validation = await self.refresh_receipt_validity()
        return LoadResult(owned=owned, validation=validation)

    async def refresh_receipt_validity(self, sandbox: bool = False) -> ValidationResult:
        """Run one validation and overwrite the stored verdict with its outcome."""
        async with self._validation_lock:
            result = await self.validator.validate(sandbox=sandbox)
            self._has_valid_receipt = result.is_valid
            self._last_validation = result
        return result

    def mark_owned(self, product_id: str) -> bool:
        """
        Record ownership of a product durably, then in memory.

        Posts a PURCHASED notification on every call, including repeats.

        Returns:
            True if the product was not owned before this call

        Raises:
            FlagStoreError: If the flag cannot be persisted; the owned set
                is left unchanged
        """
        previous = self.flag_store.get_bool(product_id)
        self.flag_store.set_bool(product_id, True)
        try:
            self.flag_store.synchronize()
        except FlagStoreError:
            self.flag_store.set_bool(product_id, previous)
            raise

        newly_owned = product_id not in self._owned
        self._owned.add(product_id)
        logger.info("product_marked_owned", product_id=product_id, newly_owned=newly_owned)

        self.notifications.post_purchased(product_id)
        return newly_owned

    def is_purchased(self, product_id: str) -> PurchaseStatus:
        """Ownership of a product plus the last known receipt validity. No side effects."""
        return PurchaseStatus(
            is_purchased=product_id in self._owned,
            has_valid_receipt=self._has_valid_receipt,
        )
