"""
Request and response schemas for the marketplace API

Request bodies are validated by these Pydantic models before any handler
logic runs. Response models are built from ORM rows (``from_attributes``) or
from plain dicts when a query adds aggregates such as ratings.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field

T = TypeVar("T")


class SaleStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    preparing = "preparing"
    shipped = "shipped"
    delivered = "delivered"
    received = "received"
    cancelled = "cancelled"
    paid = "paid"
    rejected = "rejected"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


class Page(BaseModel, Generic[T]):
    items: List[T]
    pagination: Pagination


class Message(BaseModel):
    message: str


# Users

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    is_seller: bool = False
    locale: str = "en"
    address: str = ""


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    model_config = ConfigDict(extra="forbid")

    phone: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    locale: Optional[str] = Field(default=None, min_length=2, max_length=10)
    address: Optional[str] = None
    profile_picture: Optional[str] = None
    is_seller: Optional[bool] = None


class UserProfile(ORMModel):
    id: int
    email: str
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_seller: bool
    is_active: bool
    locale: str
    address: str
    profile_picture: Optional[str] = None


class UserPublic(ORMModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_seller: bool
    locale: str
    profile_picture: Optional[str] = None


class AuthResponse(BaseModel):
    message: str
    user: UserProfile
    token: str
    token_type: str = "bearer"


class ProfileResponse(BaseModel):
    user: UserProfile


class PublicUserResponse(BaseModel):
    user: UserPublic


# Stores

class StoreCreate(BaseModel):
    store_name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    store_image_url: Optional[str] = None
    cover_image_url: Optional[str] = None


class StoreUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    store_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    store_image_url: Optional[str] = None
    cover_image_url: Optional[str] = None


class StoreOut(ORMModel):
    store_id: int = Field(validation_alias="id")
    seller_id: int
    store_name: str
    description: Optional[str] = None
    store_image_url: Optional[str] = None
    cover_image_url: Optional[str] = None


class StoreResponse(BaseModel):
    message: Optional[str] = None
    store: StoreOut


# Products

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    image_url: Optional[str] = None


class ProductUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    paused: Optional[bool] = None


class ProductOut(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str
    price: float
    stock: int
    paused: bool
    image_url: Optional[str] = None
    seller_id: int
    rating: float = 0
    ratingCount: int = 0
    store_id: Optional[int] = None
    store_name: Optional[str] = None
    is_favorite: Optional[bool] = None


class ProductResponse(BaseModel):
    message: Optional[str] = None
    product: ProductOut


# Cart

class CartItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)


class CartUpdate(BaseModel):
    items: List[CartItemIn] = Field(default_factory=list)


class CartItemOut(BaseModel):
    product_id: int
    quantity: int
    subtotal: float
    product: ProductOut


class CartOut(BaseModel):
    message: Optional[str] = None
    items: List[CartItemOut]
    total: float
    warnings: List[str] = Field(default_factory=list)


class CartValidation(BaseModel):
    valid: bool
    errors: List[str]


# Sales

class SaleLineIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class SaleCreate(BaseModel):
    products: List[SaleLineIn] = Field(default_factory=list)
    note: Optional[str] = None
    address: Optional[str] = None


class SaleLineOut(BaseModel):
    product_id: int
    quantity: int
    unit_price: float
    total_price: float
    product_name: str
    product_description: Optional[str] = None
    product_category: str
    product_image_url: Optional[str] = None
    seller_id: int


class SaleOut(BaseModel):
    id: int
    user_id: int
    date: datetime
    total_amount: float
    status: SaleStatus
    note: Optional[str] = None
    invoice_id: Optional[int] = None
    address: str
    products: List[SaleLineOut]


class SaleResponse(BaseModel):
    message: Optional[str] = None
    sale: SaleOut


class StatusChange(BaseModel):
    status: SaleStatus
    invoice_id: Optional[int] = Field(default=None, gt=0)


# Reviews

class ReviewCreate(BaseModel):
    product_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    description: Optional[str] = None


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: Optional[int] = Field(default=None, ge=1, le=5)
    description: Optional[str] = None


class ReviewOut(ORMModel):
    id: int
    description: Optional[str] = None
    rating: int
    product_id: int
    user_id: int
    timestamp: datetime


class ReviewListItem(BaseModel):
    id: int
    description: Optional[str] = None
    rating: int
    timestamp: datetime
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ReviewResponse(BaseModel):
    message: str
    review: ReviewOut


# Favorites and likes

class ProductRef(BaseModel):
    product_id: int = Field(..., gt=0)


class FavoriteToggleResponse(BaseModel):
    message: str
    is_favorite: bool


class LikeToggleResponse(BaseModel):
    message: str
    liked: bool


class LikeCheck(BaseModel):
    liked: bool


class LikesCount(BaseModel):
    likes_count: int


class LikedProduct(BaseModel):
    product_id: int
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image_url: Optional[str] = None
    seller_first_name: Optional[str] = None
    seller_last_name: Optional[str] = None


class LikerOut(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# Notifications

class NotificationOut(ORMModel):
    id: int
    title: Optional[str] = None
    message: str
    type: str
    product_id: Optional[int] = None
    sale_id: Optional[int] = None
    read: bool
    created_at: datetime


class NotificationPage(Page[NotificationOut]):
    unread_count: int


class ReadAllResponse(BaseModel):
    updated: int


class SubscribePayload(BaseModel):
    email: EmailStr


# Images

class ImageOut(ORMModel):
    id: int
    key: str
    url: str
    size: int
    mimetype: str


class ImageResponse(BaseModel):
    message: Optional[str] = None
    image: ImageOut


class PresignRequest(BaseModel):
    filename: str = Field(..., min_length=1)
    content_type: Optional[str] = Field(default=None, alias="contentType")
    folder: Optional[str] = None


class PresignResponse(BaseModel):
    presignedUrl: str
    key: str
    expiresIn: int
    publicUrl: str
