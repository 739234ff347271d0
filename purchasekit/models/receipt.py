"""
Receipt verification wire models - Pydantic models for the verifyReceipt exchange.

NO DICTIONARIES - Request and response bodies are strongly typed.
"""

import base64

from pydantic import BaseModel, ConfigDict, Field, StrictInt

STATUS_VALID = 0
STATUS_SANDBOX_RECEIPT = 21007  # Sandbox receipt sent to the production endpoint


class ReceiptVerifyRequest(BaseModel):
    """POST body sent to the verification service."""

    model_config = ConfigDict(populate_by_name=True)

    receipt_data: str = Field(..., alias="receipt-data", min_length=1)

    @classmethod
    def from_receipt(cls, receipt: bytes) -> "ReceiptVerifyRequest":
        """Build a request from the raw receipt blob."""
        return cls(receipt_data=base64.b64encode(receipt).decode("ascii"))

    def to_payload(self) -> dict[str, str]:
        """Serialise with the service's field names."""
        return self.model_dump(by_alias=True)


class ReceiptVerifyResponse(BaseModel):
    """Verification service response. Only `status` is interpreted."""

    model_config = ConfigDict(extra="ignore")

    status: StrictInt
    environment: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == STATUS_VALID

    @property
    def is_sandbox_redirect(self) -> bool:
        return self.status == STATUS_SANDBOX_RECEIPT
