from datetime import datetime

from pydantic import Field, conint, field_validator, model_validator

from .models import AddressTypeEnum, SavedPaymentTypeEnum
from .otp_utils import to_naive_utc
from .schemas import CamelModel

# ---------- CATEGORY ----------

class CategoryBase(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str | None = None
    image_url: str | None = None


class CategoryCreate(CategoryBase):
    is_active: bool = True


class CategoryOut(CategoryBase):
    id: int
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------- PRODUCT ----------

class ProductBase(CamelModel):
    category_id: int
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: conint(ge=0)
    original_price: conint(ge=0) | None = None
    discount_percentage: conint(ge=0, le=100) = 0
    image_url: str | None = None
    images: str | None = None
    sku: str | None = None
    stock: conint(ge=0) = 0
    is_active: bool = True
    is_featured: bool = False


class ProductCreate(ProductBase):
    pass


class ProductUpdate(CamelModel):
    id: int
    category_id: int | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: conint(ge=0) | None = None
    original_price: conint(ge=0) | None = None
    discount_percentage: conint(ge=0, le=100) | None = None
    image_url: str | None = None
    images: str | None = None
    sku: str | None = None
    stock: conint(ge=0) | None = None
    is_active: bool | None = None
    is_featured: bool | None = None


class ProductOut(ProductBase):
    id: int
    discounted_price: int
    rating: int
    review_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------- REVIEW ----------

class ReviewCreate(CamelModel):
    product_id: int
    rating: conint(ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    comment: str | None = None


class ReviewOut(CamelModel):
    id: int
    product_id: int
    user_id: int
    rating: int
    title: str | None = None
    comment: str | None = None
    is_verified: bool
    created_at: datetime | None = None


# =========================
# Cart & Wishlist Schemas
# =========================

class CartItemCreate(CamelModel):
    product_id: int
    quantity: int = Field(default=1, gt=0)  # quantity must be > 0


class CartItemUpdate(CamelModel):
    id: int
    quantity: int = Field(..., gt=0)


class CartItemOut(CamelModel):
    id: int
    user_id: int
    product_id: int
    quantity: int
    added_at: datetime | None = None
    updated_at: datetime | None = None


class WishlistItemIn(CamelModel):
    product_id: int


class WishlistItemOut(CamelModel):
    id: int
    user_id: int
    product_id: int
    added_at: datetime | None = None


class IdIn(CamelModel):
    id: int


# =========================
# Address Schemas
# =========================

class AddressCreate(CamelModel):
    type: AddressTypeEnum = AddressTypeEnum.HOME
    full_name: str = Field(min_length=1, max_length=255)
    phone_number: str = Field(min_length=5, max_length=20)
    address_line1: str = Field(min_length=1, max_length=255)
    address_line2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=3, max_length=10)
    country: str = "India"
    is_default: bool = False


class AddressUpdate(CamelModel):
    id: int
    type: AddressTypeEnum | None = None
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    phone_number: str | None = Field(default=None, min_length=5, max_length=20)
    address_line1: str | None = Field(default=None, min_length=1, max_length=255)
    address_line2: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, min_length=1, max_length=100)
    state: str | None = Field(default=None, min_length=1, max_length=100)
    postal_code: str | None = Field(default=None, min_length=3, max_length=10)
    country: str | None = None
    is_default: bool | None = None


class AddressOut(AddressCreate):
    id: int
    user_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =========================
# Payment Method Schemas
# =========================

class PaymentMethodCreate(CamelModel):
    type: SavedPaymentTypeEnum
    card_last_four: str | None = Field(default=None, pattern=r"^\d{4}$")
    card_brand: str | None = Field(default=None, max_length=50)
    upi_id: str | None = Field(default=None, max_length=100)
    is_default: bool = False

    @model_validator(mode="after")
    def check_identifier(self):
        if self.type == SavedPaymentTypeEnum.UPI and not self.upi_id:
            raise ValueError("upiId is required for UPI")
        cards = (SavedPaymentTypeEnum.CREDIT_CARD, SavedPaymentTypeEnum.DEBIT_CARD)
        if self.type in cards and not self.card_last_four:
            raise ValueError("cardLastFour is required for cards")
        return self


class PaymentMethodOut(PaymentMethodCreate):
    id: int
    user_id: int
    created_at: datetime | None = None


# =========================
# Banner Schemas
# =========================

class BannerCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    image_url: str = Field(min_length=1)
    link: str | None = None
    position: int = 0
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def window_in_utc(cls, v):
        # Stored naive and compared against UTC now
        return to_naive_utc(v)


class BannerOut(BannerCreate):
    id: int
