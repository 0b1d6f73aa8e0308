"""
Database models for the grocery storefront
------------------------------------------
Tech stack:
- FastAPI
- SQLAlchemy ORM
- SQLite / MySQL / PostgreSQL compatible

This file contains:
- User model
- Category, Product & Review models
- Address & PaymentMethod models
- CartItem & WishlistItem models
- Order & OrderItem models
- Coupon & Banner models

All money columns are integers in minor currency units (paise).
"""

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .pricing import discounted_price


class RoleEnum(str, Enum):
    USER = "user"
    ADMIN = "admin"


class AddressTypeEnum(str, Enum):
    HOME = "home"
    WORK = "work"
    OTHER = "other"


class OrderStatusEnum(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentModeEnum(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    UPI = "upi"
    WALLET = "wallet"
    COD = "cod"


class PaymentStatusEnum(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DiscountTypeEnum(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class SavedPaymentTypeEnum(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    UPI = "upi"
    WALLET = "wallet"


def _values(enum_cls):
    return [member.value for member in enum_cls]


def _enum_column(enum_cls, name):
    # Persist the lowercase values, not the member names
    return SQLEnum(enum_cls, name=name, values_callable=_values)


# User

class User(Base):
    """
    Storefront users.
    Identity comes from the external login provider (open_id).
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    open_id = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(Text, nullable=True)
    email = Column(String(320), nullable=True)
    login_method = Column(String(64), nullable=True)

    role = Column(
        _enum_column(RoleEnum, "user_role"),
        default=RoleEnum.USER,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
    last_signed_in = Column(DateTime, nullable=True)

    @property
    def is_admin(self):
        return self.role == RoleEnum.ADMIN


# Category

class Category(Base):
    """
    Product categories (e.g. Fruits, Dairy).
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


# Product

class Product(Base):
    """
    Represents a sellable product.
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock"),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_products_discount",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    category_id = Column(
        Integer,
        ForeignKey("categories.id"),
        index=True,
        nullable=False
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Price in paise
    price = Column(Integer, nullable=False)
    original_price = Column(Integer, nullable=True)
    discount_percentage = Column(Integer, default=0, nullable=False)

    image_url = Column(Text, nullable=True)
    # JSON array of image URLs
    images = Column(Text, nullable=True)
    sku = Column(String(100), unique=True, nullable=True)

    # Available stock quantity
    stock = Column(Integer, default=0, nullable=False)

    # Rating out of 5
    rating = Column(Integer, default=0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Computed property: price after the product's own discount
    @property
    def discounted_price(self):
        return discounted_price(self.price, self.discount_percentage)

    def __str__(self):
        return self.name


# Review

class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    # 1-5
    rating = Column(Integer, nullable=False)
    title = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


# Address

class Address(Base):
    """
    Delivery addresses saved by a user.
    """

    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    type = Column(
        _enum_column(AddressTypeEnum, "address_type"),
        default=AddressTypeEnum.HOME,
        nullable=False,
    )
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(20), nullable=False)
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(10), nullable=False)
    country = Column(String(100), default="India", nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


# CartItem

class CartItem(Base):
    """
    One product line in a user's cart.
    Adding the same product again updates this row in place.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, default=1, nullable=False)

    # Access related product
    product = relationship("Product")

    added_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


# WishlistItem

class WishlistItem(Base):
    __tablename__ = "wishlist_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_wishlist_items_user_product"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    added_at = Column(DateTime(timezone=True), server_default=func.now())


# Order

class Order(Base):
    """
    Represents a placed order.
    Only status, payment and delivery OTP fields change after creation.
    """

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "total_amount = subtotal - discount_amount + delivery_charge",
            name="ck_orders_total",
        ),
        CheckConstraint("total_amount >= 0", name="ck_orders_total_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)

    # Amounts in paise
    subtotal = Column(Integer, nullable=False)
    discount_amount = Column(Integer, default=0, nullable=False)
    delivery_charge = Column(Integer, default=0, nullable=False)
    total_amount = Column(Integer, nullable=False)

    status = Column(
        _enum_column(OrderStatusEnum, "order_status"),
        default=OrderStatusEnum.PENDING,
        nullable=False
    )

    # Payment
    payment_method = Column(_enum_column(PaymentModeEnum, "payment_method"), nullable=False)
    payment_status = Column(
        _enum_column(PaymentStatusEnum, "payment_status"),
        default=PaymentStatusEnum.PENDING,
        nullable=False
    )
    payment_id = Column(String(100), nullable=True)

    coupon_code = Column(String(50), nullable=True)
    # Set by checkout, which decrements product stock; cancelling gives it back
    stock_reserved = Column(Boolean, default=False, nullable=False)
    estimated_delivery_date = Column(DateTime, nullable=True)

    # Delivery confirmation
    delivery_otp = Column(String(6), nullable=True)
    delivery_otp_expiry = Column(DateTime, nullable=True)
    delivery_otp_verified = Column(Boolean, default=False, nullable=False)
    delivery_otp_resends = Column(Integer, default=0, nullable=False)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Items purchased in this order
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan"
    )

    def __str__(self):
        return f"Order No {self.order_number}"


class OrderItem(Base):
    """
    Individual product entry inside an order.
    Name, image and price are snapshots taken at order time.
    """

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)

    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        index=True,
        nullable=False
    )
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    product_name = Column(String(255), nullable=False)
    product_image = Column(Text, nullable=True)

    # Quantity ordered
    quantity = Column(Integer, nullable=False)

    # Snapshot unit price at time of order
    price = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")

    def __str__(self):
        return f"OrderItem {self.id}"


# Coupon

class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)

    discount_type = Column(_enum_column(DiscountTypeEnum, "discount_type"), nullable=False)
    # Percent for percentage coupons, paise for fixed ones
    discount_value = Column(Integer, nullable=False)
    min_order_amount = Column(Integer, default=0, nullable=True)
    max_discount = Column(Integer, nullable=True)

    # Optional global usage cap
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)

    expiry_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


# PaymentMethod

class PaymentMethod(Base):
    """
    Saved payment instruments. Only masked identifiers are stored.
    """

    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    type = Column(_enum_column(SavedPaymentTypeEnum, "saved_payment_type"), nullable=False)
    card_last_four = Column(String(4), nullable=True)
    card_brand = Column(String(50), nullable=True)
    upi_id = Column(String(100), nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


# Banner

class Banner(Base):
    """
    Promotional banners shown on the home screen, sorted by position.
    """

    __tablename__ = "banners"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=False)
    link = Column(Text, nullable=True)
    position = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
