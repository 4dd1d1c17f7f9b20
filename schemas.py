"""
Database Schemas for the HomeStyle storefront

Each Pydantic model describes one record kind held by the storage layer.
The ``*Create`` models are the insert payloads, the bare names are the stored
records as returned to callers (identifier included).

Field names are snake_case in Python and camelCase on the wire
(``sale_price`` <-> ``salePrice``).
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
PaymentMethod = Literal["cod", "card", "upi"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------- Users ----------

class UserProfileFields(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class UserCreate(UserProfileFields):
    username: str = Field(..., min_length=1)
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Plain on registration, hashed once stored")


class UserUpdate(UserProfileFields):
    """Partial profile update. Only fields explicitly set are applied."""

    model_config = ConfigDict(extra="forbid")


class UserProfile(UserProfileFields):
    id: int
    username: str
    email: str


class User(UserProfile):
    password: str


# ---------- Catalog ----------

class CategoryCreate(CamelModel):
    name: str
    description: Optional[str] = None
    image: Optional[str] = None


class Category(CategoryCreate):
    id: int


class ProductCreate(CamelModel):
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    # Charged price when present; in the sample catalog it is the higher figure.
    sale_price: Optional[float] = Field(None, ge=0)
    image: str
    category_id: int
    rating: float = 0.0
    review_count: int = 0
    in_stock: bool = True
    is_featured: bool = False
    is_new: bool = False
    is_bestseller: bool = False
    is_sale: bool = False


class Product(ProductCreate):
    id: int


# ---------- Orders ----------

class OrderCreate(CamelModel):
    user_id: int
    total: float
    status: OrderStatus = "pending"
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    payment_method: Optional[str] = None


class Order(OrderCreate):
    id: int
    created_at: Optional[datetime] = None


class OrderLine(CamelModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    price: float = Field(..., description="Unit price at the time of purchase")


class OrderItemCreate(OrderLine):
    order_id: int


class OrderItem(OrderItemCreate):
    id: int


class OrderDetail(Order):
    items: List[OrderItem] = Field(default_factory=list)


# ---------- Reviews ----------

class ReviewCreate(CamelModel):
    user_id: int
    product_id: int
    rating: float = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class Review(ReviewCreate):
    id: int
    created_at: Optional[datetime] = None


# ---------- Sessions ----------

class SessionRecord(BaseModel):
    sid: str
    user_id: int
    expires_at: datetime
