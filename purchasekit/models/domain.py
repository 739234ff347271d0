"""
Domain Models - Internal purchase-management models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

# Storefront error code for a payment the user cancelled
PAYMENT_CANCELLED_CODE = 2


class TransactionState(str, Enum):
    """Lifecycle state of a storefront transaction."""

    PURCHASING = "purchasing"
    PURCHASED = "purchased"
    FAILED = "failed"
    RESTORED = "restored"
    DEFERRED = "deferred"


class ReceiptEnvironment(str, Enum):
    """Verification backend a receipt is sent to."""

    PRODUCTION = "production"
    SANDBOX = "sandbox"


class ValidationOutcome(str, Enum):
    """Terminal outcome of one receipt validation."""

    VALID = "valid"
    INVALID = "invalid"
    AMBIGUOUS = "ambiguous"  # Sandbox redirect cap exhausted


@dataclass(frozen=True)
class Product:
    """Product metadata returned by the storefront. Never persisted."""

    product_id: str
    title: str
    price: Decimal
    price_locale: str

    def __post_init__(self) -> None:
        """Validate product fields."""
        if not self.product_id:
            raise ValueError("Product ID required")
        if self.price < 0:
            raise ValueError(f"Price cannot be negative: {self.price}")


@dataclass(frozen=True)
class Payment:
    """Payment request submitted to the storefront."""

    product_id: str
    quantity: int = 1

    def __post_init__(self) -> None:
        """Validate payment fields."""
        if not self.product_id:
            raise ValueError("Product ID required")
        if self.quantity <= 0:
            raise ValueError(f"Quantity must be positive: {self.quantity}")


@dataclass(frozen=True)
class TransactionError:
    """Error attached to a failed transaction."""

    code: int
    description: str = ""

    @property
    def is_cancelled(self) -> bool:
        """True when the user cancelled the payment."""
        return self.code == PAYMENT_CANCELLED_CODE


@dataclass(frozen=True)
class Transaction:
    """
    Transaction event delivered by the storefront.

    Restored transactions reference the original purchase, and the product to
    grant is the original one.
    """

    transaction_id: str
    payment: Payment
    state: TransactionState
    original: "Transaction | None" = None
    error: TransactionError | None = None

    def __post_init__(self) -> None:
        """Validate transaction consistency."""
        if not self.transaction_id:
            raise ValueError("Transaction ID required")
        if self.state == TransactionState.RESTORED and self.original is None:
            raise ValueError("Restored transaction requires the original transaction")

    @property
    def product_id(self) -> str:
        """Product identifier of this transaction's payment."""
        return self.payment.product_id

    @property
    def granted_product_id(self) -> str:
        """Product identifier ownership is granted for."""
        if self.state == TransactionState.RESTORED and self.original is not None:
            return self.original.payment.product_id
        return self.payment.product_id


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating the local receipt with the verification service."""

    outcome: ValidationOutcome
    environment: ReceiptEnvironment | None  # Last endpoint contacted, None if none
    status: int | None = None  # Last status returned by the service
    reason: str = ""
    attempts: int = 0  # Network calls made

    @property
    def is_valid(self) -> bool:
        """Check if the receipt was confirmed valid."""
        return self.outcome == ValidationOutcome.VALID


@dataclass(frozen=True)
class LoadResult:
    """Owned products after a load, plus the validation verdict if one was requested."""

    owned: frozenset[str]
    validation: ValidationResult | None = None


@dataclass(frozen=True)
class PurchaseStatus:
    """Ownership of one product plus the last known receipt validity."""

    is_purchased: bool
    has_valid_receipt: bool


@dataclass(frozen=True)
class ProductsResult:
    """Result of a product metadata request."""

    success: bool
    products: tuple[Product, ...] | None = None


@dataclass(frozen=True)
class PurchaseOutcome:
    """Terminal outcome of a transaction processed by the reconciler."""

    product_id: str
    transaction_id: str
    state: TransactionState
    error: TransactionError | None = None

    @property
    def succeeded(self) -> bool:
        """Check if ownership was granted."""
        return self.state in (TransactionState.PURCHASED, TransactionState.RESTORED)
