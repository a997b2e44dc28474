from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from order_api.db.models.sales import OrderType


class CustomerRead(BaseModel):
    """Customer read model."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Customer ID")
    customer_nr: str = Field(..., description="Customer number")
    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")


class CustomerCreate(BaseModel):
    """Create customer payload."""
    customer_nr: str = Field(..., description="Digits only, digit sum divisible by 10")
    first_name: str = Field("", description="First name")
    last_name: str = Field("", description="Last name")


class OrderItemRead(BaseModel):
    """Order item read model."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Order item ID")
    order_id: int = Field(..., description="Order ID")
    product_id: int = Field(..., description="Product ID")
    amount: int = Field(..., description="Ordered amount")
    row_version: int = Field(..., description="Concurrency token")


class OrderItemWithProduct(OrderItemRead):
    """Order item including product name and unit price."""
    product_nr: str = Field(..., description="Product number")
    product_name: str = Field(..., description="Product name")
    price: float = Field(..., description="Unit price")


class OrderItemCreate(BaseModel):
    """Create order item payload."""
    order_id: int = Field(..., description="Order ID")
    product_id: int = Field(..., description="Product ID")
    amount: int = Field(..., ge=1, description="Ordered amount")


class OrderRead(BaseModel):
    """Order read model."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Order ID")
    order_nr: str = Field(..., description="Order number")
    date: datetime = Field(..., description="Order date")
    customer_id: int = Field(..., description="Customer ID")
    order_type: OrderType = Field(..., description="Order type")
    row_version: int = Field(..., description="Concurrency token; send it back on update")


class OrderDetail(OrderRead):
    """Order with customer and items."""
    customer: Optional[CustomerRead] = Field(None)
    order_items: List[OrderItemRead] = Field(default_factory=list)


class OrderCreate(BaseModel):
    """Create order payload."""
    order_nr: str = Field(..., description="Order number")
    customer_id: int = Field(..., description="Customer ID")
    order_type: OrderType = Field(OrderType.STANDARD, description="Order type")


class OrderUpdate(BaseModel):
    """Update order payload; row_version must be the value last read."""
    id: int = Field(..., description="Order ID")
    row_version: int = Field(..., description="Concurrency token")
    order_nr: str = Field(..., description="Order number")
    customer_id: int = Field(..., description="Customer ID")
    order_type: OrderType = Field(..., description="Order type")


class OrderSummary(BaseModel):
    """Projected order row used by the paged order list."""
    id: int = Field(..., description="Order ID")
    order_nr: str = Field(..., description="Order number")
    customer_name: str = Field(..., description="'<last name> <first name>'")
    total: float = Field(..., description="Sum of amount * price over all items")


class CustomerTotalOrder(BaseModel):
    """Per-customer sales aggregate."""
    customer_name: str = Field(..., description="'<first name> <last name>'")
    number_of_orders: int = Field(..., description="Number of distinct orders")
    total_sales: float = Field(..., description="Sum of amount * price")


class SalesStatistic(BaseModel):
    """Sales statistic over all order items."""
    total_sales: float = Field(0.0, description="Sum of amount * price over all items")
    best_product: str = Field("", description="Name of the product with the highest sales")
    best_product_sales: float = Field(0.0, description="Sales of the best product")
    customer_total_orders: List[CustomerTotalOrder] = Field(default_factory=list)
