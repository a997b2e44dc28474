"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each entity type. They only
stage changes on the AsyncSession they are given; the unit of work owning that
session validates and commits (see order_api.services.unit_of_work).
"""

from .base import BaseRepository, GenericRepository  # noqa: F401
from .master_data import ProductRepository  # noqa: F401
from .pagination import PagedResult, paginate  # noqa: F401
from .sales import CustomerRepository, OrderItemRepository, OrderRepository  # noqa: F401
