"""
Database Schemas

Pydantic models that define MongoDB collections used by the app.
Each stored class name (lowercased) maps to a collection name:
Product -> "product", Order -> "order", User -> "user".
The *Create / *Update / *Request models are API payloads.
"""

from datetime import date
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from pricing import coerce_quantity, coerce_shipping

PaymentStatus = Literal["Paid", "Pending", "Refunded"]
DeliveryStatus = Literal["Pending", "Shipped", "Delivered", "Canceled"]
Category = Literal["Electronics", "Furniture", "Clothing"]


# Product collection
class Product(BaseModel):
    name: str = Field(..., min_length=1, description="Product name, unique")
    sku: str = Field(..., min_length=1, description="Stock keeping unit, stored uppercase")
    category: Category = Field(..., description="Product category")
    price: float = Field(..., ge=0, description="Unit price in dollars")
    stock: int = Field(..., ge=0, description="Units in stock")
    description: Optional[str] = Field(None, description="Product description")
    image: Optional[str] = Field(None, description="Image URL or data URI")
    active: bool = Field(True, description="Whether product is listed")

    @field_validator("sku")
    @classmethod
    def uppercase_sku(cls, v: str) -> str:
        return v.strip().upper()


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = Field(None, min_length=1)
    category: Optional[Category] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    image: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("sku")
    @classmethod
    def uppercase_sku(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v is not None else v


# Order line item (embedded in Order)
class OrderItem(BaseModel):
    product_id: str = Field(..., min_length=1, description="Referenced product _id as string")
    quantity: float = Field(1, ge=1, description="Quantity ordered")

    @field_validator("quantity", mode="before")
    @classmethod
    def parse_quantity(cls, v: Any) -> float:
        return coerce_quantity(v)


# Order collection
class Order(BaseModel):
    order_code: str = Field(..., description="Human readable code, ORD-NNNNNN")
    client_name: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    payment_status: PaymentStatus = "Pending"
    delivery_status: DeliveryStatus = "Pending"
    expected_delivery_date: date
    items: List[OrderItem] = Field(..., min_length=1)
    shipping_cost: float = Field(0, ge=0)
    total_amount: float = Field(..., description="Line items plus shipping, computed at write time")
    delivery_progress: int = Field(..., ge=0, le=100)
    customer_satisfaction: Optional[int] = Field(None, ge=1, le=3, description="1 happy, 2 neutral, 3 unhappy")


class OrderCreate(BaseModel):
    order_code: Optional[str] = None
    client_name: str = Field(..., min_length=1, description="Client name is required")
    delivery_address: str = Field(..., min_length=1, description="Delivery address is required")
    payment_status: PaymentStatus = "Pending"
    delivery_status: DeliveryStatus = "Pending"
    expected_delivery_date: date
    items: List[OrderItem] = Field(..., min_length=1, description="At least one product")
    shipping_cost: float = Field(0, ge=0)
    customer_satisfaction: Optional[int] = Field(None, ge=1, le=3)

    @field_validator("shipping_cost", mode="before")
    @classmethod
    def parse_shipping(cls, v: Any) -> Any:
        return coerce_shipping(v)


class OrderUpdate(BaseModel):
    client_name: Optional[str] = Field(None, min_length=1)
    delivery_address: Optional[str] = Field(None, min_length=1)
    payment_status: Optional[PaymentStatus] = None
    delivery_status: Optional[DeliveryStatus] = None
    expected_delivery_date: Optional[date] = None
    items: Optional[List[OrderItem]] = Field(None, min_length=1)
    shipping_cost: Optional[float] = Field(None, ge=0)
    customer_satisfaction: Optional[int] = Field(None, ge=1, le=3)

    @field_validator("shipping_cost", mode="before")
    @classmethod
    def parse_shipping(cls, v: Any) -> Any:
        return v if v is None else coerce_shipping(v)


class QuoteItem(BaseModel):
    product_id: str = ""
    quantity: Any = 1


class QuoteRequest(BaseModel):
    """Cart being edited; nothing here is rejected, only defaulted."""
    items: List[QuoteItem] = Field(default_factory=list)
    shipping_cost: Any = 0
    delivery_status: str = "Pending"


# User collection
class User(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class SigninRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
