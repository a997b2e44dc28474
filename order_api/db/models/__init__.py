"""
ORM models for the order management domain.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

# Re-export models for convenience and to ensure import side-effects
# register all mapped classes with SQLAlchemy metadata.

from .master_data import (  # noqa: F401
    Category,
    Product,
    product_categories,
)
from .sales import (  # noqa: F401
    Customer,
    Order,
    OrderItem,
    OrderType,
)
