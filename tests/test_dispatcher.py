"""
Tests for the Storefront Event Dispatcher.
"""

import asyncio

import pytest

from fakes import make_product, make_transaction
from purchasekit.models.events import ProductsReceived, ProductsRequestFailed, TransactionsUpdated
from purchasekit.services.dispatcher import StorefrontEventDispatcher
from purchasekit.services.product_query import ProductQuery
from purchasekit.services.reconciler import TransactionReconciler


@pytest.fixture
def dispatcher(catalog, storefront, state_store, notifications) -> StorefrontEventDispatcher:
    return StorefrontEventDispatcher(
        ProductQuery(catalog, storefront),
        TransactionReconciler(state_store, storefront, notifications),
    )


class TestDispatch:
    """Routing of each event type."""

    def test_transactions_go_to_reconciler(self, dispatcher, state_store, storefront):
        dispatcher.dispatch(TransactionsUpdated(transactions=(make_transaction("pro_upgrade"),)))

        assert "pro_upgrade" in state_store.owned_product_ids
        assert len(storefront.finished) == 1

    @pytest.mark.asyncio
    async def test_products_go_to_query(self, dispatcher):
        pending = asyncio.create_task(dispatcher.product_query.request_products())
        await asyncio.sleep(0)

        dispatcher.dispatch(ProductsReceived(products=(make_product("pro_upgrade"),)))

        result = await pending
        assert result.success

    @pytest.mark.asyncio
    async def test_failure_goes_to_query(self, dispatcher):
        pending = asyncio.create_task(dispatcher.product_query.request_products())
        await asyncio.sleep(0)

        dispatcher.dispatch(ProductsRequestFailed(message="offline"))

        assert (await pending).success is False

    def test_unknown_event_rejected(self, dispatcher):
        with pytest.raises(TypeError):
            dispatcher.dispatch("not an event")


class TestRunLoop:
    """The queue-draining loop."""

    @pytest.mark.asyncio
    async def test_run_drains_published_events(self, dispatcher, state_store):
        """Published events are processed in order by the loop."""
        task = asyncio.create_task(dispatcher.run())

        dispatcher.publish(TransactionsUpdated(transactions=(make_transaction("pro_upgrade"),)))
        dispatcher.publish(TransactionsUpdated(transactions=(make_transaction("remove_ads"),)))
        await dispatcher.join()

        assert state_store.owned_product_ids == frozenset({"pro_upgrade", "remove_ads"})

        dispatcher.close()
        await task

    @pytest.mark.asyncio
    async def test_bad_event_does_not_stop_loop(self, dispatcher, state_store):
        task = asyncio.create_task(dispatcher.run())

        dispatcher.publish("garbage")
        dispatcher.publish(TransactionsUpdated(transactions=(make_transaction("level_pack"),)))
        await dispatcher.join()

        assert "level_pack" in state_store.owned_product_ids

        dispatcher.close()
        await task

    @pytest.mark.asyncio
    async def test_publish_threadsafe(self, dispatcher, state_store):
        task = asyncio.create_task(dispatcher.run())
        loop = asyncio.get_running_loop()

        await loop.run_in_executor(
            None,
            dispatcher.publish_threadsafe,
            loop,
            TransactionsUpdated(transactions=(make_transaction("pro_upgrade"),)),
        )
        await asyncio.sleep(0)
        await dispatcher.join()

        assert "pro_upgrade" in state_store.owned_product_ids

        dispatcher.close()
        await task

    @pytest.mark.asyncio
    async def test_publish_after_close_is_dropped(self, dispatcher, state_store):
        dispatcher.close()
        dispatcher.publish(TransactionsUpdated(transactions=(make_transaction("pro_upgrade"),)))

        await dispatcher.run()

        assert dispatcher.closed
        assert state_store.owned_product_ids == frozenset()
