"""
Storefront Protocol - the external purchasing platform.

NO DICTIONARIES - All data uses strongly typed models.

Calls here are fire-and-forget: results arrive later as StorefrontEvent
values published to the purchase manager's dispatcher.
"""

from typing import Protocol

from purchasekit.models.domain import Payment, Transaction


class Storefront(Protocol):
    """
    Storefront collaborator protocol.

    Adapters for a concrete platform SDK implement this interface and publish
    ProductsReceived, ProductsRequestFailed and TransactionsUpdated events.
    """

    def start_products_request(self, product_ids: frozenset[str]) -> None:
        """
        Request metadata for the given product identifiers.

        The answer arrives as ProductsReceived or ProductsRequestFailed.
        """
        ...

    def add_payment(self, payment: Payment) -> None:
        """Queue a payment. Progress arrives as TransactionsUpdated."""
        ...

    def finish_transaction(self, transaction: Transaction) -> None:
        """
        Acknowledge a processed transaction so it is not redelivered.

        Must be idempotent.
        """
        ...

    def restore_completed_transactions(self) -> None:
        """Ask the storefront to redeliver completed purchases as restored transactions."""
        ...

    def can_make_payments(self) -> bool:
        """Check if this device is allowed to make payments."""
        ...

    def read_receipt(self) -> bytes | None:
        """Return the local receipt bytes, or None when the device has none."""
        ...
