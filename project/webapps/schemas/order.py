# webapps/schemas/order.py

from datetime import datetime
from pydantic import (
    BaseModel,
    Field,
    StrictInt,
    StrictStr,
    field_serializer,
    field_validator,
    ValidationError as PydanticValidationError,
)

from webapps.core.exceptions import ValidationError, PayloadTooLargeError
from webapps.schemas.common import parse_id
from webapps.services.catalog import PRODUCTS, SHIPPING_METHODS

MAX_NAME_LENGTH = 64
MAX_ADDRESS_LENGTH = 1024
MAX_QUANTITY = 1000
REQUIRED_ORDER_FIELDS = ("product", "from_name", "quantity", "address", "shipping")

# сообщение на каждое поле заказа, которое не прошло проверку типа/значения
ORDER_FIELD_ERRORS = {
    "product": "Unrecognized product.",
    "from_name": "Name must be a string.",
    "quantity": "Quantity must be a positive integer.",
    "address": "Address must be a string.",
    "shipping": "Invalid shipping method.",
}


class OrderCreate(BaseModel):
    """
    Тело POST /api/order. Строгие типы: "2" не количество, {"street": ...} не адрес.
    """
    product: StrictStr
    from_name: StrictStr = Field(min_length=1, max_length=MAX_NAME_LENGTH - 1)
    quantity: StrictInt = Field(ge=1, le=MAX_QUANTITY)
    address: StrictStr = Field(min_length=1, max_length=MAX_ADDRESS_LENGTH - 1)
    shipping: StrictStr

    @field_validator("product")
    @classmethod
    def known_product(cls, value: str) -> str:
        if value not in PRODUCTS:
            raise ValueError("unknown product")
        return value

    @field_validator("shipping")
    @classmethod
    def known_shipping(cls, value: str) -> str:
        if value not in SHIPPING_METHODS:
            raise ValueError("unknown shipping method")
        return value


class ShippingUpdate(BaseModel):
    id: int
    shipping: str
    address: str


class Order(BaseModel):
    id: int
    status: str
    cost: float
    from_name: str
    address: str
    product: str
    quantity: int
    shipping: str
    order_date: datetime

    @classmethod
    def from_model(cls, db_order) -> "Order":
        return cls(
            id=db_order.id,
            status=db_order.status,
            cost=float(db_order.order_cost),
            from_name=db_order.from_name,
            address=db_order.address,
            product=db_order.product_name,
            quantity=db_order.quantity,
            shipping=db_order.shipping_method,
            order_date=db_order.order_date,
        )

    @field_serializer("order_date")
    def serialize_order_date(self, value: datetime) -> str:
        return value.replace(microsecond=0).isoformat()


class OrderHistoryEntry(BaseModel):
    update_time: datetime
    shipping_method_used: str
    delivery_address: str

    model_config = {
        "from_attributes": True
    }


# ────────────── Разбор входных данных ──────────────

def parse_order_id(raw) -> int:
    return parse_id(raw, "Order ID")


def order_error_messages(exc: PydanticValidationError, skip=()) -> list[str]:
    """Ошибки pydantic -> сообщения для клиента, по одному на поле."""
    messages = []
    for error in exc.errors():
        field = error["loc"][0] if error["loc"] else None
        if field in skip or field not in ORDER_FIELD_ERRORS:
            continue
        if field == "quantity" and error["type"] == "less_than_equal":
            message = f"Quantity must not exceed {MAX_QUANTITY}."
        else:
            message = ORDER_FIELD_ERRORS[field]
        if message not in messages:
            messages.append(message)
    return messages


def parse_order_payload(body) -> OrderCreate:
    """
    Проверяет тело POST /api/order.

    - не объект -> 400
    - from_name >= 64 или address >= 1024 символов -> 413 (проверяется первым)
    - пропущенные поля, неверные типы, неизвестный товар/доставка,
      количество вне 1..MAX_QUANTITY -> 400, ошибки собираются все сразу
    """
    if not isinstance(body, dict):
        raise ValidationError(["Invalid JSON format or body is missing."])

    for prop, limit in (("from_name", MAX_NAME_LENGTH), ("address", MAX_ADDRESS_LENGTH)):
        value = body.get(prop)
        if isinstance(value, str) and len(value) >= limit:
            raise PayloadTooLargeError(["Payload Too Large: Name or Address is too long."])

    missing = [prop for prop in REQUIRED_ORDER_FIELDS if body.get(prop) is None or body.get(prop) == ""]
    errors = [f"Missing required property: {prop}." for prop in missing]

    try:
        order = OrderCreate.model_validate(body)
    except PydanticValidationError as e:
        errors.extend(order_error_messages(e, skip=missing))
        order = None

    if errors:
        raise ValidationError(errors)
    return order


def parse_shipping_form(form) -> ShippingUpdate:
    """Форма /update_shipping: id, shipping, address."""
    errors = []
    shipping = form.get("shipping")
    address = form.get("address")
    shipping = shipping.strip() if isinstance(shipping, str) else ""
    address = address.strip() if isinstance(address, str) else ""

    try:
        order_id = parse_order_id(form.get("id"))
    except ValidationError as e:
        errors.extend(e.errors)
        order_id = None

    if shipping not in SHIPPING_METHODS:
        errors.append("Invalid shipping method.")
    if not address:
        errors.append("Missing required property: address.")
    elif len(address) >= MAX_ADDRESS_LENGTH:
        errors.append("Address is too long.")

    if errors:
        raise ValidationError(errors)

    return ShippingUpdate(id=order_id, shipping=shipping, address=address)
