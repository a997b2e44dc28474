from __future__ import annotations

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from order_api.db.models.master_data import Product
from .base import GenericRepository


class ProductRepository(GenericRepository[Product]):
    """Repository for products."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Product)

    async def get_all_with_categories(self) -> List[Product]:
        """All products ordered by product number, categories eager loaded."""
        return await self.get(
            disable_tracking=False,
            order_by=(Product.product_nr, Product.id),
            includes=(Product.categories,),
        )

    async def get_all_ordered_by_name(self) -> List[Product]:
        # Despite the name this has always sorted by product number; clients rely on it.
        return await self.get(disable_tracking=False, order_by=(Product.product_nr, Product.id))
