"""
Catalog Registry - product identifiers the integrator cares about.
"""

from collections.abc import Iterable, Iterator

from structlog import get_logger

logger = get_logger(__name__)


class CatalogRegistry:
    """
    Set of registered product identifiers.

    Only grows. Validation and product queries operate over its members.
    """

    def __init__(self) -> None:
        self._product_ids: set[str] = set()

    def add_product(self, product_id: str) -> None:
        """Register a single product identifier."""
        self._product_ids.add(product_id)
        logger.debug("product_registered", product_id=product_id)

    def add_products(self, product_ids: Iterable[str]) -> None:
        """Register several product identifiers at once."""
        product_ids = set(product_ids)
        self._product_ids |= product_ids
        logger.debug("products_registered", count=len(product_ids))

    @property
    def product_ids(self) -> frozenset[str]:
        """Snapshot of the registered identifiers."""
        return frozenset(self._product_ids)

    @property
    def is_empty(self) -> bool:
        return not self._product_ids

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._product_ids

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._product_ids))

    def __len__(self) -> int:
        return len(self._product_ids)
