"""
Event models - storefront events consumed by the dispatcher and
notifications posted to observers.
"""

from dataclasses import dataclass
from enum import Enum

from purchasekit.models.domain import Product, Transaction


@dataclass(frozen=True)
class ProductsReceived:
    """Storefront answered the pending product metadata request."""

    products: tuple[Product, ...]
    invalid_product_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProductsRequestFailed:
    """Storefront failed the pending product metadata request."""

    message: str = ""


@dataclass(frozen=True)
class TransactionsUpdated:
    """Batch of transaction state changes, possibly including redeliveries."""

    transactions: tuple[Transaction, ...]


StorefrontEvent = ProductsReceived | ProductsRequestFailed | TransactionsUpdated


class NotificationType(str, Enum):
    """Notification names posted to observers."""

    PURCHASED = "purchased"
    PURCHASE_FAILED = "purchase_failed"


@dataclass(frozen=True)
class Notification:
    """Notification delivered to observers. `product_id` is set for PURCHASED."""

    type: NotificationType
    product_id: str | None = None
