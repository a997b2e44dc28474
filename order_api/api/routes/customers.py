from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status

from order_api.core.deps import get_unit_of_work
from order_api.db.models import Customer
from order_api.repositories.pagination import paginate
from order_api.schemas.common import PagedResponse
from order_api.schemas.sales import CustomerCreate, CustomerRead
from order_api.services.unit_of_work import UnitOfWork

router = APIRouter(prefix="/customers", tags=["Customers"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[CustomerRead],
    summary="List customers",
    description="All customers ordered by last name, then first name.",
)
async def list_customers(uow: UnitOfWork = Depends(get_unit_of_work)) -> List[CustomerRead]:
    customers = await uow.customers.get_all()
    return [CustomerRead.model_validate(c) for c in customers]


# PUBLIC_INTERFACE
@router.get(
    "/paged",
    response_model=PagedResponse[CustomerRead],
    summary="List customers page by page",
    description="One-based page of customers ordered by last name, then first name.",
)
async def list_customers_paged(
    uow: UnitOfWork = Depends(get_unit_of_work),
    page: int = Query(1, ge=1, description="Page number, first page = 1"),
    page_size: int = Query(10, ge=1, le=1000),
) -> PagedResponse[CustomerRead]:
    stmt = uow.customers.query(order_by=(Customer.last_name, Customer.first_name, Customer.id))
    result = await paginate(uow.session, stmt, page, page_size)
    return PagedResponse[CustomerRead](
        items=[CustomerRead.model_validate(c) for c in result.items],
        total_count=result.total_count,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
    description="Create a customer. Fails with 400 if the number or names are invalid or the name is taken.",
)
async def create_customer(
    payload: CustomerCreate,
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> CustomerRead:
    customer = Customer(
        customer_nr=payload.customer_nr,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    await uow.customers.add(customer)
    await uow.save_changes()
    return CustomerRead.model_validate(customer)


# PUBLIC_INTERFACE
@router.get(
    "/is-full-name-unique",
    response_model=bool,
    summary="Check customer name",
    description="True if no customer with exactly this first and last name exists.",
)
async def is_full_name_unique(
    first_name: str = Query(..., description="First name"),
    last_name: str = Query(..., description="Last name"),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> bool:
    return await uow.customers.is_full_name_unique(first_name, last_name)
