"""
Input schemas for the shop services

Each Pydantic model describes the payload a service accepts before it is
written to its table (see tables.py). Stored records themselves are plain
dicts returned by the RecordStore.
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List, Literal


OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
BlogStatus = Literal["draft", "published", "archived"]


class UserCreate(BaseModel):
    """
    Registration payload
    Table: "users"
    """
    firstName: str = Field(..., min_length=1, description="First name")
    lastName: str = Field(..., min_length=1, description="Last name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Plain text password, hashed before storage")


class Credentials(BaseModel):
    email: EmailStr
    password: str


class CategoryCreate(BaseModel):
    """
    Categories table payload
    Table: "categories"
    """
    name: str = Field(..., min_length=1, description="Category name")
    description: Optional[str] = Field(None, description="Category description")
    image: Optional[str] = Field(None, description="Image url")


class ProductCreate(BaseModel):
    """
    Products table payload
    Table: "products"
    """
    name: str = Field(..., min_length=1, description="Product name")
    slug: Optional[str] = Field(None, description="URL slug, generated from the name when omitted")
    category_id: str = Field(..., description="Owning category id")
    price: float = Field(0, ge=0, description="Price in dollars")
    image: Optional[str] = Field(None, description="Main image url")
    details: Optional[str] = Field(None, description="Product details")
    images: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    category_id: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    details: Optional[str] = None
    images: Optional[List[str]] = None


class CartItemIn(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class WishlistItemIn(BaseModel):
    product_id: str
    note: Optional[str] = None
    priority: Optional[int] = None


class CheckoutItem(BaseModel):
    productId: str
    quantity: int = Field(..., ge=1)


class Checkout(BaseModel):
    """
    Checkout payload, turned into one row of "orders"
    """
    userId: str
    firstName: str
    lastName: str
    email: EmailStr
    phoneNumber: str
    address: str
    apartment: Optional[str] = ""
    street: Optional[str] = ""
    city: str
    state: str
    cart: List[CheckoutItem] = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


class BlogCreate(BaseModel):
    """
    Blogs table payload
    Table: "blogs"
    """
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    tags: Optional[List[str]] = None
    featured_image: Optional[str] = None
    status: BlogStatus = Field("draft", description="Blog status: draft, published, archived")
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class BlogUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = None
    tags: Optional[List[str]] = None
    featured_image: Optional[str] = None
    status: Optional[BlogStatus] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class ContactMessage(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    message: str = Field(..., min_length=1)
