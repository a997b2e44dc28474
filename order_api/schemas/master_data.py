from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class CategoryRead(BaseModel):
    """Category read model."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Category ID")
    category_name: str = Field(..., description="Category name")


class ProductRead(BaseModel):
    """Product read model."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Product ID")
    product_nr: str = Field(..., description="Product number")
    name: str = Field(..., description="Product name")
    price: float = Field(..., description="Unit price")


class ProductWithCategories(ProductRead):
    """Product including its categories."""
    categories: List[CategoryRead] = Field(default_factory=list)
