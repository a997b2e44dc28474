from __future__ import annotations

import enum
from datetime import datetime
from itertools import chain
from typing import TYPE_CHECKING, List, Optional, Tuple

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapped, mapped_column, relationship

from order_api.core.validation import ValidationResult, customer_nr_checksum, names_length
from order_api.db.base import EntityObject

if TYPE_CHECKING:
    from order_api.db.models.master_data import Product
    from order_api.services.unit_of_work import UnitOfWork


class OrderType(str, enum.Enum):
    """How an order was placed."""
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    ONLINE = "ONLINE"

    @classmethod
    def parse(cls, value: str) -> "OrderType":
        """Look up a member by name, ignoring case (used by the CSV import)."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown order type: {value!r}") from None


class Customer(EntityObject):
    """Customer master."""
    __tablename__ = "customers"

    customer_nr: Mapped[str] = mapped_column(Text, nullable=False, info={"required": True})
    last_name: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    first_name: Mapped[str] = mapped_column(String(20), nullable=False, default="")

    orders: Mapped[List["Order"]] = relationship(back_populates="customer")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def validate(self) -> List[ValidationResult]:
        results = super().validate()
        unloaded = self.unloaded_attributes()
        rules = []
        if "customer_nr" not in unloaded:
            rules.append(customer_nr_checksum(self.customer_nr))
        if not unloaded & {"first_name", "last_name"}:
            rules.append(names_length(self.first_name, self.last_name))
        results.extend(result for result in rules if result is not None)
        return results

    async def validate_with_database(self, unit_of_work: "UnitOfWork") -> Optional[ValidationResult]:
        """
        The (first name, last name) pair must not be used by another customer,
        neither a stored one nor one staged in the same unit of work.
        """
        names = await self._effective_names(unit_of_work)
        if names is None:
            return None
        for other in chain(unit_of_work.session.new, unit_of_work.session.dirty):
            if other is self or not isinstance(other, Customer):
                continue
            staged = sa_inspect(other).dict
            if (staged.get("first_name"), staged.get("last_name")) == names:
                return ValidationResult("Customer name is not unique", ("first_name", "last_name"))
        unique = await unit_of_work.customers.is_full_name_unique(*names, exclude_id=self.id)
        if not unique:
            return ValidationResult("Customer name is not unique", ("first_name", "last_name"))
        return None

    async def _effective_names(self, unit_of_work: "UnitOfWork") -> Optional[Tuple[str, str]]:
        """Name pair as it will be stored; names not loaded are read from the database."""
        if not self.unloaded_attributes() & {"first_name", "last_name"}:
            return self.first_name, self.last_name
        row = (
            await unit_of_work.session.execute(
                select(Customer.first_name, Customer.last_name).where(Customer.id == self.id)
            )
        ).one_or_none()
        if row is None:
            # Row is gone; the save itself reports the conflict.
            return None
        current = sa_inspect(self).dict
        return current.get("first_name", row.first_name), current.get("last_name", row.last_name)


class Order(EntityObject):
    """Sales order header."""
    __tablename__ = "orders"

    order_nr: Mapped[str] = mapped_column(Text, nullable=False, info={"required": True})
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_type: Mapped[OrderType] = mapped_column(
        Enum(OrderType, native_enum=False, length=20), nullable=False, default=OrderType.STANDARD
    )

    customer: Mapped[Customer] = relationship(back_populates="orders")
    order_items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan"
    )


class OrderItem(EntityObject):
    """Sales order line item."""
    __tablename__ = "order_items"

    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    order: Mapped[Order] = relationship(back_populates="order_items")
    product: Mapped["Product"] = relationship()
