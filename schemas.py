"""
Database Schemas

Hypermart storefront models.
Each Pydantic model corresponds to a MongoDB collection (lowercased class name).
Request payloads accepted by the API live at the bottom of the file.
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"


# Core collections

class Product(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    category: str = Field(..., min_length=1, description="Category tag used for discounts")
    price: int = Field(..., ge=0, description="List price in whole currency units")
    stock: int = Field(0, ge=0, description="Units available")
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, description="Path under /uploads")


class Discount(BaseModel):
    category: str = Field(..., min_length=1, description="One discount per category")
    percent: float = Field(..., ge=0, le=100, description="e.g. 10 = 10%")
    active: bool = True


class OrderItem(BaseModel):
    product_id: str
    name: str
    qty: int = Field(..., ge=1)
    price: int = Field(..., ge=0, description="List price at time of order")
    final_price: int = Field(..., ge=0, description="Price after promo")
    promo_name: Optional[str] = None


class CustomerInfo(BaseModel):
    name: str = ""
    phone: str = ""
    address: str = ""


class Order(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    invoice_code: str
    items: List[OrderItem]
    total: int = Field(..., ge=0)
    customer: CustomerInfo
    status: OrderStatus = OrderStatus.PROCESSING


class Admin(BaseModel):
    username: str
    password_hash: str


# Request payloads

class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    qty: Any = Field(..., description="Checked by the checkout, not here")


class CheckoutRequest(BaseModel):
    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    items: List[CartItem] = Field(default_factory=list)


class OrderStatusUpdate(BaseModel):
    status: str


class StockUpdate(BaseModel):
    stock: int = Field(..., ge=0)


class AdminCredentials(BaseModel):
    username: str = ""
    password: str = ""
