"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.

Expected negative outcomes (invalid receipt, failed product request, failed
purchase) are returned as result values, not raised.
"""


class PurchaseKitError(Exception):
    """Base exception for all purchasekit errors."""

    pass


class FlagStoreError(PurchaseKitError):
    """Raised when the durable flag store cannot read or persist a flag."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"Flag store error for {key!r}: {message}")


class VerificationResponseError(PurchaseKitError):
    """Raised when the verification service returns an unreadable response."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Verification response error: {message}")


class StorefrontError(PurchaseKitError):
    """Raised when a storefront collaborator call fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Storefront error: {message}")


class PaymentsDisabledError(PurchaseKitError):
    """Raised when a purchase is attempted on a device that cannot make payments."""

    def __init__(self) -> None:
        super().__init__("This device is not allowed to make payments")


class ManagerClosedError(PurchaseKitError):
    """Raised when a closed purchase manager is used."""

    def __init__(self) -> None:
        super().__init__("Purchase manager is closed")
