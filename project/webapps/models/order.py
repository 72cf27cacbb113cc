# webapps/models/order.py

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from webapps.utils.database import Base

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)  # автоинкремент

    from_name       = Column(String(64), nullable=False)            # Покупатель
    address         = Column(Text, nullable=False)                  # Адрес доставки
    product_name    = Column(String(128), nullable=False)           # Товар
    quantity        = Column(Integer, nullable=False)               # Количество
    shipping_method = Column(String(32), nullable=False)            # Способ доставки
    order_cost      = Column(Numeric(10, 2), nullable=False)        # Цена x кол-во на момент заказа
    status          = Column(String(16), nullable=False, index=True)  # Placed / Shipped / Cancelled
    order_date      = Column(DateTime, nullable=False, index=True)  # UTC, без tzinfo


class OrderHistory(Base):
    __tablename__ = "order_histories"

    id = Column(Integer, primary_key=True, index=True)

    order_id             = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    shipping_method_used = Column(String(32), nullable=False)
    delivery_address     = Column(Text, nullable=False)
    update_time          = Column(DateTime, nullable=False)
