from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import ColumnElement, func, select

from order_api.core.deps import get_unit_of_work
from order_api.core.errors import ConcurrencyConflictError
from order_api.db.models import Customer, Order, OrderItem, Product
from order_api.schemas.common import MessageResponse
from order_api.schemas.sales import (
    OrderCreate,
    OrderDetail,
    OrderRead,
    OrderSummary,
    OrderUpdate,
    SalesStatistic,
)
from order_api.services.unit_of_work import UnitOfWork

router = APIRouter(prefix="/orders", tags=["Orders"])


def _name_filter(name_filter: Optional[str]) -> Optional[ColumnElement[bool]]:
    """Orders whose customer's last name contains `name_filter` (no filter when empty)."""
    if not name_filter:
        return None
    return Order.customer.has(Customer.last_name.contains(name_filter, autoescape=True))


def _summary_selector() -> list:
    customer_name = (
        select(Customer.last_name + " " + Customer.first_name)
        .where(Customer.id == Order.customer_id)
        .scalar_subquery()
    )
    total = (
        select(func.coalesce(func.sum(Product.price * OrderItem.amount), 0.0))
        .select_from(OrderItem)
        .join(OrderItem.product)
        .where(OrderItem.order_id == Order.id)
        .scalar_subquery()
    )
    return [
        Order.id.label("id"),
        Order.order_nr.label("order_nr"),
        customer_name.label("customer_name"),
        total.label("total"),
    ]


async def _ensure_customer(uow: UnitOfWork, customer_id: int) -> None:
    if not await uow.customers.exists(customer_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Customer {customer_id} does not exist",
        )


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[OrderDetail],
    summary="List orders",
    description="All orders including customer and order items.",
)
async def list_orders(uow: UnitOfWork = Depends(get_unit_of_work)) -> List[OrderDetail]:
    orders = await uow.orders.get(includes=(Order.customer, Order.order_items), order_by=Order.id)
    return [OrderDetail.model_validate(o) for o in orders]


# PUBLIC_INTERFACE
@router.get(
    "/page",
    response_model=List[OrderSummary],
    summary="Page of order summaries",
    description=(
        "Zero-based page of orders, newest first, projected to id, order number, "
        "customer name ('<last> <first>') and order total."
    ),
)
async def get_orders_page(
    uow: UnitOfWork = Depends(get_unit_of_work),
    name_filter: Optional[str] = Query(None, description="Substring of the customer's last name"),
    page: int = Query(0, ge=0, description="Page index, first page = 0"),
    page_size: int = Query(10, ge=1, le=1000),
) -> List[OrderSummary]:
    return await uow.orders.get_projected_page(
        OrderSummary,
        page,
        page_size,
        filter=_name_filter(name_filter),
        order_by=(Order.date.desc(), Order.id.desc()),
        selector=_summary_selector(),
    )


# PUBLIC_INTERFACE
@router.get(
    "/count",
    response_model=int,
    summary="Count orders",
    description="Number of orders, optionally filtered by the customer's last name.",
)
async def count_orders(
    uow: UnitOfWork = Depends(get_unit_of_work),
    name_filter: Optional[str] = Query(None, description="Substring of the customer's last name"),
) -> int:
    return await uow.orders.count(_name_filter(name_filter))


# PUBLIC_INTERFACE
@router.get(
    "/sales-statistic",
    response_model=SalesStatistic,
    summary="Sales statistic",
    description="Total sales, best product and per-customer totals.",
)
async def get_sales_statistic(uow: UnitOfWork = Depends(get_unit_of_work)) -> SalesStatistic:
    return await uow.orders.get_sales_statistic()


# PUBLIC_INTERFACE
@router.get(
    "/{order_id}",
    response_model=OrderRead,
    summary="Get order",
    responses={404: {"description": "Order not found"}},
)
async def get_order(
    order_id: int = Path(..., description="Order ID"),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> OrderRead:
    order = await uow.orders.get_by_id(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description="Create an order dated now.",
)
async def create_order(
    payload: OrderCreate,
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> OrderRead:
    await _ensure_customer(uow, payload.customer_id)
    order = Order(
        order_nr=payload.order_nr,
        customer_id=payload.customer_id,
        order_type=payload.order_type,
        date=datetime.now(),
    )
    await uow.orders.add(order)
    await uow.save_changes()
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.put(
    "/{order_id}",
    response_model=OrderRead,
    summary="Update order",
    description=(
        "Update order number, customer and type. The order date is kept. "
        "row_version must be the value last read; otherwise 409 is returned."
    ),
    responses={
        400: {"description": "Id mismatch or invalid data"},
        404: {"description": "Order not found"},
        409: {"description": "Order was changed by someone else"},
    },
)
async def update_order(
    payload: OrderUpdate,
    order_id: int = Path(..., description="Order ID"),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> OrderRead:
    if order_id <= 0 or order_id != payload.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order id does not match the payload")
    if not await uow.orders.exists(order_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    await _ensure_customer(uow, payload.customer_id)

    # Detached copy carrying the client's row_version; the date column is not touched.
    order = Order(
        id=payload.id,
        row_version=payload.row_version,
        order_nr=payload.order_nr,
        customer_id=payload.customer_id,
        order_type=payload.order_type,
    )
    uow.orders.attach(order)
    try:
        await uow.save_changes()
    except ConcurrencyConflictError:
        if not await uow.orders.exists(order_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
        raise
    await uow.session.refresh(order)
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.delete(
    "/{order_id}",
    response_model=MessageResponse,
    summary="Delete order",
    description="Delete an order together with its items.",
    responses={404: {"description": "Order not found"}},
)
async def delete_order(
    order_id: int = Path(..., description="Order ID"),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> MessageResponse:
    if not await uow.orders.delete(order_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    await uow.save_changes()
    return MessageResponse(message=f"Order {order_id} deleted")
