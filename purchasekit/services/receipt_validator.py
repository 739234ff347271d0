"""
Receipt Validator - remote verification of the local receipt.

NO DICTIONARIES - Requests and responses go through typed models.

The receipt is posted to the production endpoint first. Status 21007 means
the receipt was issued by the sandbox environment, so the same receipt is
re-posted to the sandbox endpoint, at most max_sandbox_redirects times.
Every other condition ends the validation with a single terminal result.
"""

import json
import time

import httpx
from pydantic import ValidationError
from structlog import get_logger

from purchasekit.config import settings
from purchasekit.exceptions import VerificationResponseError
from purchasekit.models.domain import ReceiptEnvironment, ValidationOutcome, ValidationResult
from purchasekit.models.receipt import ReceiptVerifyRequest, ReceiptVerifyResponse
from purchasekit.observability.metrics import metrics
from purchasekit.services.receipt_source import ReceiptSource

logger = get_logger(__name__)


class ReceiptValidator:
    """Validates the local receipt against the production and sandbox endpoints."""

    def __init__(
        self,
        receipt_source: ReceiptSource,
        http_client: httpx.AsyncClient | None = None,
        production_url: str | None = None,
        sandbox_url: str | None = None,
        timeout: float | None = None,
        max_sandbox_redirects: int | None = None,
    ) -> None:
        """
        Initialize the validator.

        Args:
            receipt_source: Provides the raw local receipt
            http_client: Client to use; one is created lazily when omitted
            production_url: Production endpoint (defaults to settings)
            sandbox_url: Sandbox endpoint (defaults to settings)
            timeout: Transport timeout in seconds (defaults to settings)
            max_sandbox_redirects: Sandbox hop cap (defaults to settings)
        """
        self.receipt_source = receipt_source
        self._http_client = http_client
        self._owns_client = http_client is None
        self.production_url = production_url or settings.production_verify_url
        self.sandbox_url = sandbox_url or settings.sandbox_verify_url
        self.timeout = timeout if timeout is not None else settings.verify_timeout_seconds
        self.max_sandbox_redirects = (
            max_sandbox_redirects
            if max_sandbox_redirects is not None
            else settings.max_sandbox_redirects
        )
        if self.max_sandbox_redirects < 0:
            raise ValueError(f"max_sandbox_redirects cannot be negative: {max_sandbox_redirects}")

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    async def aclose(self) -> None:
        """Close the HTTP client if this validator created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def endpoint_for(self, environment: ReceiptEnvironment) -> str:
        if environment == ReceiptEnvironment.SANDBOX:
            return self.sandbox_url
        return self.production_url

    async def validate(self, sandbox: bool = False) -> ValidationResult:
        """
        Validate the local receipt.

        Args:
            sandbox: Start at the sandbox endpoint instead of production

        Returns:
            Terminal validation result; never raises for transport or
            response problems
        """
        started = time.monotonic()
        result = await self._run(sandbox)
        metrics.record_validation(
            result.outcome.value,
            result.environment.value if result.environment else None,
            time.monotonic() - started,
        )
        logger.info(
            "receipt_validation_completed",
            outcome=result.outcome.value,
            environment=result.environment.value if result.environment else None,
            status=result.status,
            reason=result.reason,
            attempts=result.attempts,
        )
        return result

    async def _run(self, sandbox: bool) -> ValidationResult:
        receipt = self.receipt_source.read_receipt()
        if not receipt:
            logger.warning("receipt_missing")
            return ValidationResult(
                outcome=ValidationOutcome.INVALID,
                environment=None,
                reason="missing_receipt",
            )

        request = ReceiptVerifyRequest.from_receipt(receipt)
        environment = ReceiptEnvironment.SANDBOX if sandbox else ReceiptEnvironment.PRODUCTION
        attempts = 0
        redirects = 0

        while True:
            attempts += 1
            try:
                response = await self._post_receipt(environment, request)
            except httpx.HTTPError as exc:
                logger.error(
                    "receipt_validation_transport_error",
                    environment=environment.value,
                    error=str(exc),
                )
                metrics.record_error("transport_error", "receipt_validation")
                return ValidationResult(
                    outcome=ValidationOutcome.INVALID,
                    environment=environment,
                    reason="transport_error",
                    attempts=attempts,
                )
            except VerificationResponseError as exc:
                logger.error(
                    "receipt_validation_malformed_response",
                    environment=environment.value,
                    error=exc.message,
                )
                metrics.record_error("malformed_response", "receipt_validation")
                return ValidationResult(
                    outcome=ValidationOutcome.INVALID,
                    environment=environment,
                    reason="malformed_response",
                    attempts=attempts,
                )

            if response.is_valid:
                return ValidationResult(
                    outcome=ValidationOutcome.VALID,
                    environment=environment,
                    status=response.status,
                    reason="valid",
                    attempts=attempts,
                )

            if response.is_sandbox_redirect:
                if redirects >= self.max_sandbox_redirects:
                    logger.warning(
                        "receipt_sandbox_redirect_limit_reached",
                        environment=environment.value,
                        redirects=redirects,
                    )
                    return ValidationResult(
                        outcome=ValidationOutcome.AMBIGUOUS,
                        environment=environment,
                        status=response.status,
                        reason="sandbox_redirect_limit",
                        attempts=attempts,
                    )
                redirects += 1
                logger.info("receipt_redirected_to_sandbox", status=response.status)
                environment = ReceiptEnvironment.SANDBOX
                continue

            return ValidationResult(
                outcome=ValidationOutcome.INVALID,
                environment=environment,
                status=response.status,
                reason="rejected",
                attempts=attempts,
            )

    async def _post_receipt(
        self,
        environment: ReceiptEnvironment,
        request: ReceiptVerifyRequest,
    ) -> ReceiptVerifyResponse:
        """
        POST the receipt to one endpoint and decode the response.

        Raises:
            httpx.HTTPError: On transport failure or an HTTP error status
            VerificationResponseError: If the body is not JSON with an integer status
        """
        url = self.endpoint_for(environment)
        logger.debug("posting_receipt", environment=environment.value, url=url)

        try:
            response = await self.http_client.post(
                url,
                json=request.to_payload(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError:
            metrics.record_verification_request(environment.value, False)
            raise

        metrics.record_verification_request(environment.value, True)

        try:
            return ReceiptVerifyResponse.model_validate(response.json())
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise VerificationResponseError(f"Invalid JSON body: {exc}") from exc
        except ValidationError as exc:
            raise VerificationResponseError(
                f"Missing or invalid status: {exc.error_count()} error(s)"
            ) from exc
