from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from order_api.core.deps import get_unit_of_work
from order_api.schemas.master_data import ProductRead, ProductWithCategories
from order_api.services.unit_of_work import UnitOfWork

router = APIRouter(prefix="/products", tags=["Products"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ProductRead],
    summary="List products",
    description="All products ordered by product number.",
)
async def list_products(uow: UnitOfWork = Depends(get_unit_of_work)) -> List[ProductRead]:
    products = await uow.products.get_all_ordered_by_name()
    return [ProductRead.model_validate(p) for p in products]


# PUBLIC_INTERFACE
@router.get(
    "/with-categories",
    response_model=List[ProductWithCategories],
    summary="List products with categories",
    description="All products ordered by product number, each with its categories.",
)
async def list_products_with_categories(
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> List[ProductWithCategories]:
    products = await uow.products.get_all_with_categories()
    return [ProductWithCategories.model_validate(p) for p in products]
