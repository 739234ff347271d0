"""
Tests for domain and wire models.

Covers dataclass validation and the verification request/response models.
"""

import base64
from decimal import Decimal

import pytest
from pydantic import ValidationError

from fakes import make_transaction
from purchasekit.models.domain import (
    Payment,
    Product,
    PurchaseOutcome,
    TransactionError,
    TransactionState,
    ValidationOutcome,
    ValidationResult,
)
from purchasekit.models.receipt import (
    STATUS_SANDBOX_RECEIPT,
    ReceiptVerifyRequest,
    ReceiptVerifyResponse,
)


class TestProduct:
    """Tests for Product validation."""

    def test_valid_product(self):
        product = Product("pro_upgrade", "Pro Upgrade", Decimal("4.99"), "en_US")
        assert product.price == Decimal("4.99")

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            Product("", "Nameless", Decimal("1"), "en_US")

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            Product("pro_upgrade", "Pro", Decimal("-0.01"), "en_US")


class TestPayment:
    """Tests for Payment validation."""

    def test_default_quantity(self):
        assert Payment("pro_upgrade").quantity == 1

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValueError):
            Payment("pro_upgrade", quantity=quantity)


class TestTransaction:
    """Tests for Transaction consistency."""

    def test_granted_product_for_purchase(self):
        assert make_transaction("remove_ads").granted_product_id == "remove_ads"

    def test_granted_product_for_restore(self):
        original = make_transaction("pro_upgrade", transaction_id="1")
        restored = make_transaction(
            "pro_upgrade", state=TransactionState.RESTORED, transaction_id="2", original=original
        )
        assert restored.granted_product_id == "pro_upgrade"
        assert restored.original.transaction_id == "1"

    def test_restore_requires_original(self):
        with pytest.raises(ValueError):
            make_transaction("pro_upgrade", state=TransactionState.RESTORED)

    def test_transaction_id_required(self):
        with pytest.raises(ValueError):
            make_transaction("pro_upgrade", transaction_id="")

    def test_cancelled_error(self):
        assert TransactionError(code=2).is_cancelled
        assert not TransactionError(code=0).is_cancelled


class TestResults:
    """Tests for result dataclasses."""

    def test_validation_result_validity(self):
        assert ValidationResult(ValidationOutcome.VALID, None).is_valid
        assert not ValidationResult(ValidationOutcome.AMBIGUOUS, None).is_valid

    @pytest.mark.parametrize(
        "state,succeeded",
        [
            (TransactionState.PURCHASED, True),
            (TransactionState.RESTORED, True),
            (TransactionState.FAILED, False),
        ],
    )
    def test_purchase_outcome_succeeded(self, state, succeeded):
        assert PurchaseOutcome("pro_upgrade", "1", state).succeeded is succeeded


class TestReceiptVerifyRequest:
    """Tests for the verification request body."""

    def test_payload_uses_service_field_name(self):
        request = ReceiptVerifyRequest.from_receipt(b"receipt")
        assert request.to_payload() == {"receipt-data": base64.b64encode(b"receipt").decode()}

    def test_empty_receipt_rejected(self):
        with pytest.raises(ValidationError):
            ReceiptVerifyRequest(receipt_data="")


class TestReceiptVerifyResponse:
    """Tests for the verification response body."""

    def test_status_flags(self):
        assert ReceiptVerifyResponse(status=0).is_valid
        assert ReceiptVerifyResponse(status=STATUS_SANDBOX_RECEIPT).is_sandbox_redirect
        response = ReceiptVerifyResponse(status=21003)
        assert not response.is_valid and not response.is_sandbox_redirect

    def test_status_must_be_integer(self):
        with pytest.raises(ValidationError):
            ReceiptVerifyResponse.model_validate({"status": "0"})
        with pytest.raises(ValidationError):
            ReceiptVerifyResponse.model_validate({"status": 0.5})

    def test_status_required(self):
        with pytest.raises(ValidationError):
            ReceiptVerifyResponse.model_validate({"environment": "Sandbox"})
