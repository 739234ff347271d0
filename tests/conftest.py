"""
Pytest Configuration and Centralized Fixtures.

Provides fixtures wired to the fakes in fakes.py:
- Storefront recording every call made to it
- Verification service served through httpx.MockTransport
- Purchase state store and manager wired to the fakes
"""

import pytest

from fakes import (
    PRODUCTION_URL,
    SANDBOX_URL,
    FakeStorefront,
    FakeVerificationService,
    make_validator,
)
from purchasekit.config import Settings
from purchasekit.manager import PurchaseManager
from purchasekit.services.catalog import CatalogRegistry
from purchasekit.services.flag_store import InMemoryFlagStore
from purchasekit.services.notifications import NotificationCenter
from purchasekit.services.purchase_state import PurchaseStateStore

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def storefront() -> FakeStorefront:
    return FakeStorefront()


@pytest.fixture
def flag_store() -> InMemoryFlagStore:
    return InMemoryFlagStore()


@pytest.fixture
def notifications() -> NotificationCenter:
    return NotificationCenter(history_size=50)


@pytest.fixture
def received(notifications: NotificationCenter) -> list:
    """Notifications delivered to a live subscriber."""
    delivered: list = []
    notifications.subscribe(delivered.append)
    return delivered


@pytest.fixture
def catalog() -> CatalogRegistry:
    registry = CatalogRegistry()
    registry.add_products({"pro_upgrade", "remove_ads", "level_pack"})
    return registry


@pytest.fixture
def verification_service() -> FakeVerificationService:
    return FakeVerificationService()


@pytest.fixture
def state_store(
    catalog: CatalogRegistry,
    flag_store: InMemoryFlagStore,
    storefront: FakeStorefront,
    notifications: NotificationCenter,
    verification_service: FakeVerificationService,
) -> PurchaseStateStore:
    return PurchaseStateStore(
        catalog,
        flag_store,
        make_validator(verification_service, storefront),
        notifications,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        production_verify_url=PRODUCTION_URL,
        sandbox_verify_url=SANDBOX_URL,
        verify_timeout_seconds=5.0,
        notification_history_size=20,
    )


@pytest.fixture
def manager(
    storefront: FakeStorefront,
    flag_store: InMemoryFlagStore,
    verification_service: FakeVerificationService,
    test_settings: Settings,
) -> PurchaseManager:
    return PurchaseManager(
        storefront,
        flag_store,
        validator=make_validator(verification_service, storefront),
        settings=test_settings,
    )
