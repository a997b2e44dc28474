from __future__ import annotations

from typing import List

from sqlalchemy import Column, Float, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from order_api.db.base import Base, EntityObject


product_categories = Table(
    "product_categories",
    Base.metadata,
    Column("product_id", ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Product(EntityObject):
    """Product master record."""
    __tablename__ = "products"

    product_nr: Mapped[str] = mapped_column(Text, nullable=False, info={"required": True})
    name: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    categories: Mapped[List["Category"]] = relationship(
        secondary=product_categories, back_populates="products"
    )


class Category(EntityObject):
    """Product category; a product may belong to several."""
    __tablename__ = "categories"

    category_name: Mapped[str] = mapped_column(Text, nullable=False, info={"required": True})

    products: Mapped[List[Product]] = relationship(
        secondary=product_categories, back_populates="categories"
    )
