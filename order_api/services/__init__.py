"""
Service layer: the unit of work coordinating repositories on one session.
"""

from .base import BaseUnitOfWork  # noqa: F401
from .unit_of_work import UnitOfWork  # noqa: F401
