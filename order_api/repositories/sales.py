from __future__ import annotations

from typing import List, Optional, Union

from sqlalchemy import and_, distinct, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from order_api.db.models.master_data import Product
from order_api.db.models.sales import Customer, Order, OrderItem
from order_api.schemas.sales import CustomerTotalOrder, SalesStatistic
from .base import NO_TRACKING, GenericRepository


class CustomerRepository(GenericRepository[Customer]):
    """Repository for customers."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Customer)

    async def get_all(self) -> List[Customer]:
        """All customers ordered by last name, then first name."""
        return await self.get(
            disable_tracking=False,
            order_by=(Customer.last_name, Customer.first_name, Customer.id),
        )

    async def is_full_name_unique(
        self, first_name: str, last_name: str, exclude_id: Optional[int] = None
    ) -> bool:
        """
        True if no persisted customer has exactly this first and last name
        (case sensitive). `exclude_id` skips the customer being validated.
        """
        cond = and_(Customer.first_name == first_name, Customer.last_name == last_name)
        if exclude_id is not None:
            cond = and_(cond, Customer.id != exclude_id)
        return not await self.scalar(select(exists().where(cond)))


class OrderRepository(GenericRepository[Order]):
    """Repository for orders, including the sales statistic."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Order)

    async def delete(self, target: Union[Order, int]) -> bool:
        """Stage removal of an order given either the entity or its id."""
        if isinstance(target, Order):
            await self.remove(target)
            return True
        return await super().delete(target)

    async def get_sales_statistic(self) -> SalesStatistic:
        """
        Aggregate all order items (line value = amount * unit price).

        - total_sales: sum over all lines
        - best_product: product with the highest summed line value; ties go to
          the lowest product id
        - customer_total_orders: per customer the number of distinct orders and
          the summed line value, highest total first (ties by customer id).
          number_of_orders counts orders, not order lines: an order with three
          items counts once.
        """
        line_total = OrderItem.amount * Product.price
        total = func.sum(line_total)

        total_stmt = select(func.coalesce(total, 0.0)).select_from(OrderItem).join(OrderItem.product)
        total_sales = float(await self.scalar(total_stmt) or 0.0)

        best_stmt = (
            select(Product.id, Product.name, total.label("total_sales"))
            .select_from(OrderItem)
            .join(OrderItem.product)
            .group_by(Product.id, Product.name)
            .order_by(total.desc(), Product.id.asc())
            .limit(1)
        )
        best = (await self.execute(best_stmt)).first()

        customers_stmt = (
            select(
                Customer.first_name,
                Customer.last_name,
                func.count(distinct(Order.id)).label("number_of_orders"),
                total.label("total_sales"),
            )
            .select_from(OrderItem)
            .join(OrderItem.order)
            .join(Order.customer)
            .join(OrderItem.product)
            .group_by(Customer.id, Customer.first_name, Customer.last_name)
            .order_by(total.desc(), Customer.id.asc())
        )
        rows = (await self.execute(customers_stmt)).all()

        return SalesStatistic(
            total_sales=total_sales,
            best_product=best.name if best else "",
            best_product_sales=float(best.total_sales) if best else 0.0,
            customer_total_orders=[
                CustomerTotalOrder(
                    customer_name=f"{row.first_name} {row.last_name}",
                    number_of_orders=int(row.number_of_orders),
                    total_sales=float(row.total_sales or 0.0),
                )
                for row in rows
            ],
        )


class OrderItemRepository(GenericRepository[OrderItem]):
    """Repository for order items."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OrderItem)

    async def get_by_order_id(self, order_id: int) -> List[OrderItem]:
        """Items of one order with their product loaded, ordered by product name (read-only)."""
        stmt = (
            select(OrderItem)
            .join(OrderItem.product)
            .options(contains_eager(OrderItem.product))
            .where(OrderItem.order_id == order_id)
            .order_by(Product.name, OrderItem.id)
            .execution_options(**{NO_TRACKING: True})
        )
        return await self.scalars(stmt)

    def insert(self, order_item: OrderItem) -> None:
        self.session.add(order_item)

    async def delete(self, target: Union[OrderItem, int]) -> bool:
        """Stage removal of an item given either the entity or its id."""
        if isinstance(target, OrderItem):
            await self.remove(target)
            return True
        return await super().delete(target)

    async def delete_by_id(self, order_item_id: int) -> None:
        """Stage removal of the item if it exists; a missing id is not an error."""
        item = await self.scalar_one_or_none(select(OrderItem).where(OrderItem.id == order_item_id))
        if item is not None:
            await self.session.delete(item)
