"""
Tests for the order lifecycle: creation, lazy shipping sweep, cancellation,
shipping updates and history.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from webapps.core.exceptions import NotFoundError, IneligibleStateError
from webapps.schemas.order import OrderCreate
from webapps.services import catalog
from webapps.services.order import (
    create_order_service,
    sweep_order_statuses_service,
    cancel_order_service,
    update_shipping_service,
    read_order_service,
    read_orders_service,
    read_order_history_service,
    track_order_service,
)

from conftest import START


def make_order(**overrides) -> OrderCreate:
    data = {
        "product": "Matte Black Aviator",
        "from_name": "Hedwig",
        "quantity": 2,
        "address": "123 1st St Nowhere, MN 55555",
        "shipping": "Ground",
    }
    data.update(overrides)
    return OrderCreate(**data)


class TestCreateOrder:
    def test_new_order_is_placed_with_cost_from_catalog(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            return await read_order_service(created.id, database, log)

        order = run_db(scenario)
        assert order.status == "Placed"
        assert Decimal(order.order_cost) == Decimal("100.00")
        assert order.order_date == START

    def test_cost_is_not_rederived_after_price_change(self, run_db, monkeypatch):
        async def create(database, log):
            return (await create_order_service(make_order(quantity=3), database, log, now=START)).id

        order_id = run_db(create)
        monkeypatch.setitem(catalog.PRODUCTS, "Matte Black Aviator", Decimal("999.00"))

        async def read(database, log):
            return await read_order_service(order_id, database, log)

        assert Decimal(run_db(read).order_cost) == Decimal("150.00")

    def test_creation_records_initial_history_entry(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(shipping="Expedited"), database, log, now=START)
            return await read_order_history_service(created.id, database, log)

        history = run_db(scenario)
        assert len(history) == 1
        assert history[0].shipping_method_used == "Expedited"
        assert history[0].delivery_address == "123 1st St Nowhere, MN 55555"


class TestSweep:
    def test_placed_orders_ship_after_duration(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            early = await sweep_order_statuses_service(database, log, now=START + timedelta(seconds=299))
            status_early = (await read_order_service(created.id, database, log)).status
            late = await sweep_order_statuses_service(database, log, now=START + timedelta(seconds=301))
            status_late = (await read_order_service(created.id, database, log)).status
            return early, status_early, late, status_late

        assert run_db(scenario) == (0, "Placed", 1, "Shipped")

    def test_sweep_is_idempotent(self, run_db):
        async def scenario(database, log):
            for minutes in (0, 1, 10):
                await create_order_service(make_order(), database, log, now=START + timedelta(minutes=minutes))
            later = START + timedelta(minutes=12)
            first = await sweep_order_statuses_service(database, log, now=later)
            after_first = [o.status for o in await read_orders_service(database, log, now=START)]
            second = await sweep_order_statuses_service(database, log, now=later)
            after_second = [o.status for o in await read_orders_service(database, log, now=START)]
            return first, second, after_first, after_second

        first, second, after_first, after_second = run_db(scenario)
        assert first == 2
        assert second == 0
        assert after_first == after_second == ["Shipped", "Shipped", "Placed"]

    def test_sweep_leaves_cancelled_orders_alone(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            await cancel_order_service(created.id, database, log)
            return await track_order_service(created.id, database, log, now=START + timedelta(hours=1))

        assert run_db(scenario).status == "Cancelled"


class TestCancel:
    def test_cancel_placed_then_again_is_rejected(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            await cancel_order_service(created.id, database, log)
            with pytest.raises(IneligibleStateError):
                await cancel_order_service(created.id, database, log)
            return (await read_order_service(created.id, database, log)).status

        assert run_db(scenario) == "Cancelled"

    def test_cancel_shipped_order(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            await sweep_order_statuses_service(database, log, now=START + timedelta(minutes=6))
            await cancel_order_service(created.id, database, log)
            return (await read_order_service(created.id, database, log)).status

        assert run_db(scenario) == "Cancelled"

    def test_cancel_missing_order_is_not_found(self, run_db):
        async def scenario(database, log):
            with pytest.raises(NotFoundError):
                await cancel_order_service(4242, database, log)

        run_db(scenario)

    def test_concurrent_cancels_only_one_wins(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            return await asyncio.gather(
                cancel_order_service(created.id, database, log),
                cancel_order_service(created.id, database, log),
                return_exceptions=True,
            )

        results = run_db(scenario)
        assert sum(1 for r in results if r is None) == 1
        assert sum(1 for r in results if isinstance(r, IneligibleStateError)) == 1


class TestUpdateShipping:
    def test_update_changes_order_and_appends_history(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            updated = await update_shipping_service(
                created.id, "Expedited", "1 New Rd", database, log, now=START + timedelta(seconds=30)
            )
            history = await read_order_history_service(created.id, database, log)
            return updated, history

        updated, history = run_db(scenario)
        assert updated.shipping_method == "Expedited"
        assert updated.address == "1 New Rd"
        assert updated.status == "Placed"
        assert [h.delivery_address for h in history] == ["1 New Rd", "123 1st St Nowhere, MN 55555"]

    def test_update_cancelled_order_is_rejected_without_history(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            await cancel_order_service(created.id, database, log)
            with pytest.raises(IneligibleStateError):
                await update_shipping_service(created.id, "Ground", "Elsewhere", database, log, now=START)
            return await read_order_history_service(created.id, database, log)

        assert len(run_db(scenario)) == 1

    def test_update_missing_order_is_not_found(self, run_db):
        async def scenario(database, log):
            with pytest.raises(NotFoundError):
                await update_shipping_service(77, "Ground", "Elsewhere", database, log)

        run_db(scenario)


class TestHistory:
    def test_history_returns_five_most_recent(self, run_db):
        async def scenario(database, log):
            created = await create_order_service(make_order(), database, log, now=START)
            for i in range(1, 7):
                await update_shipping_service(
                    created.id, "Flat Rate", f"Address {i}", database, log, now=START + timedelta(seconds=i)
                )
            return await read_order_history_service(created.id, database, log)

        history = run_db(scenario)
        assert [h.delivery_address for h in history] == [f"Address {i}" for i in (6, 5, 4, 3, 2)]

    def test_history_of_missing_order_is_not_found(self, run_db):
        async def scenario(database, log):
            with pytest.raises(NotFoundError):
                await read_order_history_service(1, database, log)

        run_db(scenario)


class TestListOrders:
    def test_filter_by_name_and_status(self, run_db):
        async def scenario(database, log):
            await create_order_service(make_order(from_name="Alice 100%"), database, log, now=START)
            second = await create_order_service(make_order(from_name="Bob"), database, log, now=START)
            await create_order_service(make_order(from_name="Alicia"), database, log, now=START)
            await cancel_order_service(second.id, database, log)

            by_name = await read_orders_service(database, log, query="Ali", now=START)
            by_percent = await read_orders_service(database, log, query="100%", now=START)
            cancelled = await read_orders_service(database, log, status="Cancelled", now=START)
            everything = await read_orders_service(database, log, status="All", now=START)
            return by_name, by_percent, cancelled, everything

        by_name, by_percent, cancelled, everything = run_db(scenario)
        assert [o.from_name for o in by_name] == ["Alice 100%", "Alicia"]
        assert [o.from_name for o in by_percent] == ["Alice 100%"]
        assert [o.from_name for o in cancelled] == ["Bob"]
        assert len(everything) == 3
