from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from order_api.core.deps import get_unit_of_work
from order_api.db.models import OrderItem
from order_api.schemas.sales import OrderItemCreate, OrderItemRead, OrderItemWithProduct
from order_api.services.unit_of_work import UnitOfWork

router = APIRouter(prefix="/order-items", tags=["Order Items"])


def _with_product(item: OrderItem) -> OrderItemWithProduct:
    return OrderItemWithProduct(
        id=item.id,
        order_id=item.order_id,
        product_id=item.product_id,
        amount=item.amount,
        row_version=item.row_version,
        product_nr=item.product.product_nr,
        product_name=item.product.name,
        price=item.product.price,
    )


# PUBLIC_INTERFACE
@router.get(
    "/by-order/{order_id}",
    response_model=List[OrderItemWithProduct],
    summary="Items of an order",
    description="Items of one order with product data, ordered by product name.",
)
async def get_items_by_order(
    order_id: int = Path(..., description="Order ID"),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> List[OrderItemWithProduct]:
    items = await uow.order_items.get_by_order_id(order_id)
    return [_with_product(i) for i in items]


# PUBLIC_INTERFACE
@router.get(
    "/{item_id}",
    response_model=OrderItemRead,
    summary="Get order item",
    responses={404: {"description": "Order item not found"}},
)
async def get_order_item(
    item_id: int = Path(..., description="Order item ID"),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> OrderItemRead:
    item = await uow.order_items.get_by_id(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order item not found")
    return OrderItemRead.model_validate(item)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=OrderItemRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create order item",
)
async def create_order_item(
    payload: OrderItemCreate,
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> OrderItemRead:
    if not await uow.orders.exists(payload.order_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Order {payload.order_id} does not exist")
    if not await uow.products.exists(payload.product_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Product {payload.product_id} does not exist"
        )
    item = OrderItem(order_id=payload.order_id, product_id=payload.product_id, amount=payload.amount)
    uow.order_items.insert(item)
    await uow.save_changes()
    return OrderItemRead.model_validate(item)


# PUBLIC_INTERFACE
@router.delete(
    "/{item_id}",
    response_model=OrderItemRead,
    summary="Delete order item",
    description="Delete an order item and return it.",
    responses={404: {"description": "Order item not found"}},
)
async def delete_order_item(
    item_id: int = Path(..., description="Order item ID"),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> OrderItemRead:
    item = await uow.order_items.get_by_id(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order item not found")
    deleted = OrderItemRead.model_validate(item)
    await uow.order_items.delete(item)
    await uow.save_changes()
    return deleted
