"""
Database Schemas

MongoDB collection schemas defined as Pydantic models. Every document is
validated against one of these before it is written.

Model name lowercased is the collection name:
- Product -> "product"
- User -> "user"
- Order -> "order"

Attributes are snake_case in Python and camelCase on the wire and in the
database (e.g. ``old_price`` <-> ``oldPrice``).
"""

from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

Category = Literal["men", "women", "kids"]
Role = Literal["customer", "supplier"]
OrderStatus = Literal["pending", "shipped", "delivered", "cancelled"]
PaymentMethod = Literal["card", "paypal", "cash"]

# BSON stores integers as signed 64-bit values
MAX_INT64 = 2**63 - 1
Int64 = Annotated[int, Field(ge=-MAX_INT64 - 1, le=MAX_INT64)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)

    def to_document(self, **kwargs) -> dict:
        return self.model_dump(by_alias=True, **kwargs)


# Products

class ProductIn(CamelModel):
    title: str = Field(..., description="Product title")
    category: Category = Field(..., description="men | women | kids")
    description: str = Field(..., description="Product description")
    old_price: float = Field(..., description="Price before discount")
    new_price: float = Field(..., description="Current selling price")
    discount: float = Field(0, description="Discount shown on the card")
    rating: float = Field(0, ge=0, le=5, description="Average rating")
    popular_with: List[str] = Field(default_factory=list)
    image: str = Field(..., description="Image URL")
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    stock: Int64 = Field(0, description="Units in stock")


class Product(ProductIn):
    """
    Products collection schema
    Collection name: "product"
    """
    id: int = Field(..., ge=1, le=MAX_INT64, description="Sequential catalog id")


class ProductUpdate(CamelModel):
    id: Int64
    title: Optional[str] = None
    category: Optional[Category] = None
    description: Optional[str] = None
    old_price: Optional[float] = None
    new_price: Optional[float] = None
    discount: Optional[float] = None
    rating: Optional[float] = None
    popular_with: Optional[List[str]] = None
    image: Optional[str] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    stock: Optional[Int64] = None


class ProductRef(BaseModel):
    id: Int64


# Users

class User(CamelModel):
    """
    Users collection schema
    Collection name: "user"
    """
    name: str = Field(..., min_length=1, description="Full name")
    email: EmailStr = Field(..., description="Email address, unique")
    password: str = Field(..., description="BCrypt hashed password")
    role: Role = Field("customer", description="Role: customer | supplier")


class RegisterInput(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    role: Role = "customer"


class LoginInput(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=1)


class UserUpdate(ProfileUpdate):
    role: Optional[Role] = None


# Orders

class OrderItem(CamelModel):
    product_id: Int64 = Field(..., description="Catalog id of the product")
    quantity: int = Field(1, ge=1, le=MAX_INT64)
    price: float = Field(..., ge=0, description="Unit price at time of order")
    name: Optional[str] = None
    image: Optional[str] = None


class ShippingAddress(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class OrderIn(CamelModel):
    items: List[OrderItem] = Field(..., min_length=1)
    shipping_address: Optional[ShippingAddress] = None
    payment_method: PaymentMethod = "card"


class Order(OrderIn):
    """
    Orders collection schema
    Collection name: "order"
    """
    user_id: str = Field(..., description="Owner's user id")
    total: float = Field(..., ge=0)
    status: OrderStatus = "pending"


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderUpdate(CamelModel):
    status: Optional[OrderStatus] = None
    shipping_address: Optional[ShippingAddress] = None
    payment_method: Optional[PaymentMethod] = None
