from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from order_api.repositories.master_data import ProductRepository
from order_api.repositories.sales import CustomerRepository, OrderItemRepository, OrderRepository
from order_api.services.base import BaseUnitOfWork


class UnitOfWork(BaseUnitOfWork):
    """Unit of work exposing the order management repositories on one session."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.customers = CustomerRepository(session)
        self.orders = OrderRepository(session)
        self.order_items = OrderItemRepository(session)
        self.products = ProductRepository(session)
