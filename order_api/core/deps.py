from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from order_api.db.session import get_async_session
from order_api.services.unit_of_work import UnitOfWork


# PUBLIC_INTERFACE
async def get_unit_of_work(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[UnitOfWork, None]:
    """
    Yield a request scoped UnitOfWork.

    The underlying session is closed when the request finishes, whether the
    handler returned normally, raised, or was cancelled; an uncommitted
    transaction is rolled back at that point.
    """
    uow = UnitOfWork(session)
    try:
        yield uow
    finally:
        await uow.close()
