# webapps/routes/order.py

import secrets

from fastapi import APIRouter, Query, Request, Response, status
from fastapi.responses import JSONResponse
from typing import List

from webapps.core.exceptions import ValidationError, NotFoundError, IneligibleStateError
from webapps.routes.common import make_templates, read_json, render_message
from webapps.schemas.order import (
    Order,
    OrderHistoryEntry,
    parse_order_id,
    parse_order_payload,
    parse_shipping_form,
)
from webapps.services.catalog import PRODUCTS, SHIPPING_METHODS, OrderStatus
from webapps.services.order import (
    create_order_service,
    cancel_order_service,
    update_shipping_service,
    track_order_service,
    read_orders_service,
    read_order_history_service,
)
from webapps.utils.security import sanitize_cookie_value

router = APIRouter()
templates = make_templates("shop")


# ────────────── Страницы ──────────────
@router.get("/", include_in_schema=False)
@router.get("/about", include_in_schema=False)
async def about(request: Request):
    return templates.TemplateResponse(request, "about.html", {})


@router.get("/order", include_in_schema=False)
async def order_form(request: Request):
    return templates.TemplateResponse(request, "order.html", {
        "products": PRODUCTS,
        "shipping_methods": SHIPPING_METHODS,
        "customer_name": request.cookies.get("customer_name", ""),
    })


@router.get("/tracking/{order_id}", include_in_schema=False)
async def tracking(order_id: str, request: Request):
    """
    Страница отслеживания. Перед чтением заказа - ленивый перевод Placed -> Shipped.
    """
    state = request.app.state
    try:
        db_order = await track_order_service(
            parse_order_id(order_id),
            state.database,
            state.log,
            now=state.clock(),
            ship_duration_seconds=state.settings.SHIP_DURATION_SECONDS,
        )
    except ValidationError:
        return render_message(templates, request, "404.html", 404, "Invalid tracking ID format.")
    except NotFoundError:
        return render_message(templates, request, "404.html", 404, "Order not found.")

    return templates.TemplateResponse(request, "tracking.html", {
        "order": Order.from_model(db_order),
        "shipping_methods": SHIPPING_METHODS,
    })


@router.get("/admin/{admin_path}", include_in_schema=False)
async def admin_orders(
    admin_path: str,
    request: Request,
    query: str = "",
    status_filter: str = Query("", alias="status"),
):
    """
    Список заказов для админа по секретному пути ADMIN_ORDER_PATH.
    """
    state = request.app.state
    if not secrets.compare_digest(admin_path, state.settings.ADMIN_ORDER_PATH):
        return render_message(templates, request, "404.html", 404, "The requested resource was not found.")

    orders = await read_orders_service(
        state.database,
        state.log,
        query=query,
        status=status_filter,
        now=state.clock(),
        ship_duration_seconds=state.settings.SHIP_DURATION_SECONDS,
    )
    return templates.TemplateResponse(request, "admin/orders.html", {
        "orders": [Order.from_model(o) for o in orders],
        "query": query,
        "status_filter": status_filter,
        "statuses": [s.value for s in OrderStatus],
    })


@router.post("/update_shipping", include_in_schema=False)
async def update_shipping(request: Request):
    """
    Форма смены доставки/адреса. Любая неудача (кривые данные, нет заказа,
    заказ уже отменён) -> 400 со страницей order_fail.
    """
    state = request.app.state
    form = await request.form()
    try:
        update = parse_shipping_form(form)
        db_order = await update_shipping_service(
            update.id, update.shipping, update.address, state.database, state.log, now=state.clock()
        )
    except (ValidationError, NotFoundError, IneligibleStateError) as e:
        return templates.TemplateResponse(
            request, "order_fail.html", {"errors": e.errors}, status_code=status.HTTP_400_BAD_REQUEST
        )

    return templates.TemplateResponse(request, "tracking.html", {
        "order": Order.from_model(db_order),
        "shipping_methods": SHIPPING_METHODS,
    })


# ────────────── API ──────────────
@router.post(
    "/api/order",
    status_code=status.HTTP_201_CREATED,
    summary="Создать заказ",
    responses={
        201: {"description": "Заказ создан", "content": {"application/json": {"example": {"status": "success", "order_id": 1}}}},
        400: {"description": "Неверные данные заказа, список ошибок в errors"},
        413: {"description": "Имя или адрес слишком длинные"},
        500: {"description": "Внутренняя ошибка БД"},
    },
)
async def create_order(request: Request):
    state = request.app.state
    order = parse_order_payload(await read_json(request))
    db_order = await create_order_service(order, state.database, state.log, now=state.clock())

    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"status": "success", "order_id": db_order.id},
    )
    response.set_cookie(
        "customer_name",
        sanitize_cookie_value(order.from_name),
        path="/",
        max_age=state.settings.CUSTOMER_COOKIE_MAX_AGE,
    )
    return response


@router.delete(
    "/api/cancel_order",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Отменить заказ",
    responses={
        204: {"description": "Заказ отменён"},
        400: {"description": "Неверный ID или заказ уже нельзя отменить"},
        404: {"description": "Заказ не найден"},
        500: {"description": "Внутренняя ошибка БД"},
    },
)
async def cancel_order(request: Request):
    state = request.app.state
    body = await read_json(request)
    if not isinstance(body, dict):
        raise ValidationError(["Invalid JSON format or body is missing."])

    await cancel_order_service(parse_order_id(body.get("order_id")), state.database, state.log)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/api/order/{order_id}/history",
    response_model=List[OrderHistoryEntry],
    summary="История доставки заказа",
    response_description="Последние 5 изменений, новые сверху",
    responses={
        200: {"description": "История получена"},
        400: {"description": "Неверный формат ID"},
        404: {"description": "Заказ не найден"},
        500: {"description": "Внутренняя ошибка БД"},
    },
)
async def order_history(order_id: str, request: Request):
    state = request.app.state
    history = await read_order_history_service(
        parse_order_id(order_id),
        state.database,
        state.log,
        limit=state.settings.HISTORY_LIMIT,
    )
    return [OrderHistoryEntry.model_validate(h) for h in history]
