"""
Product Query - product metadata requests to the storefront.

At most one storefront request is in flight. Callers arriving while one is
pending join it and receive the same result.
"""

import asyncio

from structlog import get_logger

from purchasekit.models.domain import ProductsResult
from purchasekit.models.events import ProductsReceived, ProductsRequestFailed
from purchasekit.observability.metrics import metrics
from purchasekit.services.catalog import CatalogRegistry
from purchasekit.services.storefront import Storefront

logger = get_logger(__name__)


class ProductQuery:
    """Requests metadata for registered products and fans the answer out to waiters."""

    def __init__(self, catalog: CatalogRegistry, storefront: Storefront) -> None:
        self.catalog = catalog
        self.storefront = storefront
        self._waiters: list[asyncio.Future[ProductsResult]] = []
        self._in_flight = False

    @property
    def is_pending(self) -> bool:
        return self._in_flight

    async def request_products(self) -> ProductsResult:
        """
        Request metadata for every registered product.

        Returns:
            success=False with no products when nothing is registered or the
            storefront fails; otherwise the storefront's product list
        """
        if self.catalog.is_empty:
            logger.warning("no_product_identifiers")
            metrics.record_product_request(False)
            return ProductsResult(success=False)

        future: asyncio.Future[ProductsResult] = asyncio.get_running_loop().create_future()
        self._waiters.append(future)

        if self._in_flight:
            logger.info("products_request_joined", waiters=len(self._waiters))
        else:
            self._in_flight = True
            product_ids = self.catalog.product_ids
            logger.info("requesting_products", count=len(product_ids))
            try:
                self.storefront.start_products_request(product_ids)
            except Exception as exc:
                logger.exception("products_request_start_failed")
                self.handle_request_failed(ProductsRequestFailed(message=str(exc)))

        return await future

    def handle_products_received(self, event: ProductsReceived) -> None:
        """Resolve all waiters with the storefront's product list."""
        for product in event.products:
            logger.info(
                "product_found",
                product_id=product.product_id,
                title=product.title,
                price=str(product.price),
            )
        if event.invalid_product_ids:
            logger.warning("invalid_product_ids", product_ids=list(event.invalid_product_ids))

        self._resolve(ProductsResult(success=True, products=tuple(event.products)))

    def handle_request_failed(self, event: ProductsRequestFailed) -> None:
        """Resolve all waiters with a failure."""
        logger.error("products_request_failed", error=event.message)
        self._resolve(ProductsResult(success=False))

    def _resolve(self, result: ProductsResult) -> None:
        waiters, self._waiters = self._waiters, []
        self._in_flight = False

        if not waiters:
            logger.warning("products_response_without_request", success=result.success)
            return

        metrics.record_product_request(result.success)
        for future in waiters:
            # Waiters whose caller was cancelled are skipped
            if not future.done():
                future.set_result(result)
