# webapps/services/catalog.py

"""
Каталог магазина: товары, цены, способы доставки и статусы заказа.
"""

import enum
from decimal import Decimal

PRODUCTS: dict[str, Decimal] = {
    "Vintage Silver-Grey Browline": Decimal("110.00"),
    "Silver Metal Square": Decimal("75.00"),
    "Matte Black Aviator": Decimal("50.00"),
    "The Sentinel Bifocal": Decimal("150.00"),
    "The Aviator Classic": Decimal("85.00"),
}

SHIPPING_METHODS = ("Flat Rate", "Ground", "Expedited")


class OrderStatus(str, enum.Enum):
    PLACED = "Placed"
    SHIPPED = "Shipped"
    # Объявлен, но ни один переход сюда не ведёт
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


# Статусы, из которых заказ ещё можно менять или отменить
MUTABLE_STATUSES = (OrderStatus.PLACED.value, OrderStatus.SHIPPED.value)


def calculate_cost(product_name: str, quantity: int) -> Decimal:
    """Стоимость фиксируется при создании заказа и потом не пересчитывается."""
    return PRODUCTS[product_name] * quantity


def typeset_dollars(value) -> str:
    """110 -> '$110.00'; мусор -> '$0.00'."""
    try:
        return f"${Decimal(str(value)):.2f}"
    except (ArithmeticError, ValueError):
        return "$0.00"
