# webapps/services/order.py

"""
Жизненный цикл заказа.

    Placed ──(прошло SHIP_DURATION)──> Shipped
    Placed / Shipped ──(отмена)──> Cancelled       (необратимо)
    Placed / Shipped ──(смена доставки/адреса)──> тот же статус + запись в истории

Перевод Placed -> Shipped ленивый: выполняется одним UPDATE перед чтением
списка заказов админом и перед страницей отслеживания, фонового планировщика нет.
Отставание статуса ограничено частотой этих запросов.

Конкурентные отмены/изменения одного заказа сериализует сама БД:
условный UPDATE ... WHERE status IN (...) затронет строку только у одного.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update

from webapps.core.exceptions import NotFoundError, IneligibleStateError
from webapps.models.order import Order as OrderModel, OrderHistory as OrderHistoryModel
from webapps.schemas.order import OrderCreate
from webapps.services.catalog import OrderStatus, MUTABLE_STATUSES, calculate_cost
from webapps.utils.database import Database
from webapps.utils.log import Log

SHIP_DURATION_SECONDS = 300
HISTORY_LIMIT = 5


def utcnow() -> datetime:
    """Текущее время UTC без tzinfo, в таком виде даты лежат в БД."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def create_order_service(
    order: OrderCreate, database: Database, log: Log, now: datetime | None = None
) -> OrderModel:
    """
    Создание заказа: строка в orders и первая запись истории в одной транзакции.
    """
    now = now or utcnow()
    cost = calculate_cost(order.product, order.quantity)

    async with database.transaction() as session:
        db_order = OrderModel(
            from_name=order.from_name,
            address=order.address,
            product_name=order.product,
            quantity=order.quantity,
            shipping_method=order.shipping,
            order_cost=cost,
            status=OrderStatus.PLACED.value,
            order_date=now,
        )
        session.add(db_order)
        await session.flush()  # нужен id для истории

        session.add(OrderHistoryModel(
            order_id=db_order.id,
            shipping_method_used=order.shipping,
            delivery_address=order.address,
            update_time=now,
        ))

    await log.log_info("order", "Заказ создан", {"id": db_order.id, "cost": cost})
    return db_order


async def sweep_order_statuses_service(
    database: Database,
    log: Log,
    now: datetime | None = None,
    ship_duration_seconds: int = SHIP_DURATION_SECONDS,
) -> int:
    """
    Все заказы в Placed старше ship_duration_seconds -> Shipped.
    Один UPDATE, повторный запуск ничего не меняет. Возвращает число строк.
    """
    cutoff = (now or utcnow()) - timedelta(seconds=ship_duration_seconds)

    async with database.session() as session:
        result = await session.execute(
            update(OrderModel)
            .where(OrderModel.status == OrderStatus.PLACED.value)
            .where(OrderModel.order_date < cutoff)
            .values(status=OrderStatus.SHIPPED.value)
            .execution_options(synchronize_session=False)
        )
        await session.commit()

    if result.rowcount:
        await log.log_info("order", "Заказы переведены в Shipped", {"count": result.rowcount})
    return result.rowcount


async def _raise_missing_or_ineligible(session, order_id: int, log: Log, action: str):
    """Условный UPDATE не затронул строк: заказа нет (404) или статус не тот (400)."""
    result = await session.execute(select(OrderModel.status).where(OrderModel.id == order_id))
    current_status = result.scalar_one_or_none()
    if current_status is None:
        await log.log_warning("order", f"{action}: заказ не найден", {"id": order_id})
        raise NotFoundError("Order not found.", {"id": order_id})

    await log.log_warning("order", f"{action}: недопустимый статус", {"id": order_id, "status": current_status})
    raise IneligibleStateError(
        f"Order in status '{current_status}' cannot be changed.",
        {"id": order_id, "status": current_status},
    )


async def cancel_order_service(order_id: int, database: Database, log: Log) -> None:
    """Отмена заказа в Placed/Shipped. Cancelled -> IneligibleStateError."""
    async with database.session() as session:
        result = await session.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .where(OrderModel.status.in_(MUTABLE_STATUSES))
            .values(status=OrderStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        await session.commit()

        if result.rowcount == 0:
            await _raise_missing_or_ineligible(session, order_id, log, "Отмена")

    await log.log_info("order", "Заказ отменён", {"id": order_id})


async def update_shipping_service(
    order_id: int,
    shipping: str,
    address: str,
    database: Database,
    log: Log,
    now: datetime | None = None,
) -> OrderModel:
    """
    Смена способа доставки и/или адреса + запись в истории, одной транзакцией.
    """
    now = now or utcnow()

    async with database.transaction() as session:
        result = await session.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .where(OrderModel.status.in_(MUTABLE_STATUSES))
            .values(shipping_method=shipping, address=address)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await _raise_missing_or_ineligible(session, order_id, log, "Смена доставки")

        session.add(OrderHistoryModel(
            order_id=order_id,
            shipping_method_used=shipping,
            delivery_address=address,
            update_time=now,
        ))

        result = await session.execute(select(OrderModel).where(OrderModel.id == order_id))
        db_order = result.scalar_one()

    await log.log_info("order", "Доставка заказа обновлена", {"id": order_id, "shipping": shipping})
    return db_order


async def read_order_service(order_id: int, database: Database, log: Log) -> OrderModel:
    """
    Чтение заказа по ID.
    """
    async with database.session() as session:
        result = await session.execute(select(OrderModel).where(OrderModel.id == order_id))
        db_order = result.scalar_one_or_none()

    if db_order is None:
        await log.log_warning("order", "Заказ не найден", {"id": order_id})
        raise NotFoundError("Order not found.", {"id": order_id})
    return db_order


async def track_order_service(
    order_id: int,
    database: Database,
    log: Log,
    now: datetime | None = None,
    ship_duration_seconds: int = SHIP_DURATION_SECONDS,
) -> OrderModel:
    """Страница отслеживания: сначала ленивый перевод статусов, потом чтение."""
    await sweep_order_statuses_service(database, log, now, ship_duration_seconds)
    return await read_order_service(order_id, database, log)


async def read_orders_service(
    database: Database,
    log: Log,
    query: str = "",
    status: str = "",
    now: datetime | None = None,
    ship_duration_seconds: int = SHIP_DURATION_SECONDS,
) -> list[OrderModel]:
    """
    Список заказов для админа: поиск по имени покупателя и фильтр по статусу
    ("All" или пусто - без фильтра). Перед чтением - ленивый перевод статусов.
    """
    await sweep_order_statuses_service(database, log, now, ship_duration_seconds)

    stmt = select(OrderModel)
    if query:
        stmt = stmt.where(OrderModel.from_name.contains(query, autoescape=True))
    if status and status != "All":
        stmt = stmt.where(OrderModel.status == status)
    stmt = stmt.order_by(OrderModel.id.asc())

    async with database.session() as session:
        result = await session.execute(stmt)
        orders = result.scalars().all()

    await log.log_info("order", f"{len(orders)} заказов загружено", {"query": query, "status": status})
    return list(orders)


async def read_order_history_service(
    order_id: int, database: Database, log: Log, limit: int = HISTORY_LIMIT
) -> list[OrderHistoryModel]:
    """
    Последние `limit` записей истории доставки, новые сверху.
    Пустая история - проверяем, существует ли заказ вообще.
    """
    async with database.session() as session:
        result = await session.execute(
            select(OrderHistoryModel)
            .where(OrderHistoryModel.order_id == order_id)
            .order_by(OrderHistoryModel.update_time.desc(), OrderHistoryModel.id.desc())
            .limit(limit)
        )
        history = list(result.scalars().all())

        if not history:
            exists = await session.execute(select(OrderModel.id).where(OrderModel.id == order_id))
            if exists.scalar_one_or_none() is None:
                await log.log_warning("order", "История: заказ не найден", {"id": order_id})
                raise NotFoundError("Order not found.", {"id": order_id})

    return history


async def count_orders_service(database: Database) -> int:
    async with database.session() as session:
        result = await session.execute(select(func.count()).select_from(OrderModel))
        return result.scalar_one()
