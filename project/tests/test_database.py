import asyncio

import pytest
from sqlalchemy import select, func, text

from webapps.core.exceptions import StoreError, NotFoundError
from webapps.models.order import Order, OrderHistory
from webapps.schemas.order import OrderCreate
from webapps.services.order import create_order_service, read_order_service

from conftest import START


def order_row(**overrides):
    data = dict(
        from_name="Hedwig",
        address="Somewhere",
        product_name="Silver Metal Square",
        quantity=1,
        shipping_method="Ground",
        order_cost=75,
        status="Placed",
        order_date=START,
    )
    data.update(overrides)
    return Order(**data)


async def count(database, model):
    async with database.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


def test_transaction_rolls_back_all_statements_on_error(run_db):
    async def scenario(database, log):
        with pytest.raises(RuntimeError):
            async with database.transaction() as session:
                session.add(order_row())
                await session.flush()
                raise RuntimeError("boom")
        return await count(database, Order)

    assert run_db(scenario) == 0


def test_transaction_commits_together(run_db):
    async def scenario(database, log):
        await create_order_service(
            OrderCreate(product="Silver Metal Square", from_name="A", quantity=1, address="B", shipping="Ground"),
            database,
            log,
            now=START,
        )
        return await count(database, Order), await count(database, OrderHistory)

    assert run_db(scenario) == (1, 1)


def test_store_failures_become_store_error(run_db):
    async def scenario(database, log):
        with pytest.raises(StoreError) as info:
            async with database.session() as session:
                await session.execute(text("SELECT * FROM no_such_table"))
        return info.value

    error = run_db(scenario)
    assert error.status_code == 500
    assert error.errors == [StoreError.public_message]
    assert error.__cause__ is not None


def test_failed_transaction_commit_is_store_error(run_db):
    async def scenario(database, log):
        with pytest.raises(StoreError):
            async with database.transaction() as session:
                await session.execute(text("INSERT INTO no_such_table VALUES (1)"))
        return await count(database, Order)

    assert run_db(scenario) == 0


def test_exhausted_pool_queues_callers(run_db):
    async def scenario(database, log):
        async with database.transaction() as session:
            session.add(order_row())
        results = await asyncio.gather(*(read_order_service(1, database, log) for _ in range(4)))
        return [o.id for o in results]

    assert run_db(scenario, pool_size=1) == [1, 1, 1, 1]


def test_app_errors_pass_through_untouched(run_db):
    async def scenario(database, log):
        with pytest.raises(NotFoundError):
            async with database.session():
                raise NotFoundError("nope")

    run_db(scenario)
