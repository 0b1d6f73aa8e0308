"""
Access layer: one filtered read or one write per function.

Every function takes the request's Session as its first argument. Reads
degrade to an empty result when the store is down; writes commit or raise.
"""

import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .database import read_path, write_path
from .errors import NotFound, ValidationFailed
from .models import (
    Address,
    Banner,
    CartItem,
    Category,
    Order,
    OrderItem,
    PaymentMethod,
    Product,
    Review,
    RoleEnum,
    User,
    WishlistItem,
)
from .otp_utils import utcnow

logger = logging.getLogger(__name__)


def _apply_fields(row, data: dict):
    for key, value in data.items():
        setattr(row, key, value)


def _paginate(query, limit=None, offset=None):
    if offset is not None:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query


# ==================== USERS ====================

@read_path()
def get_user_by_id(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).first()


@read_path()
def get_user_by_open_id(db: Session, open_id: str):
    return db.query(User).filter(User.open_id == open_id).first()


@write_path
def upsert_user(db: Session, data: dict, owner_open_id: str | None = None) -> User:
    """
    Insert or update a user keyed by open_id.
    Only fields present in `data` are written; the owner identity becomes
    admin unless a role is given explicitly.
    """
    open_id = data.get("open_id")
    if not open_id:
        raise ValidationFailed("User open_id is required for upsert")

    values = {
        key: data[key]
        for key in ("name", "email", "login_method", "role", "last_signed_in")
        if key in data
    }
    if values.get("role") is None:
        values.pop("role", None)
        if owner_open_id and open_id == owner_open_id:
            values["role"] = RoleEnum.ADMIN
    if not values.get("last_signed_in"):
        values["last_signed_in"] = utcnow()

    user = db.query(User).filter(User.open_id == open_id).first()
    if user is None:
        user = User(open_id=open_id, **values)
        db.add(user)
    else:
        _apply_fields(user, values)

    db.commit()
    db.refresh(user)
    return user


# ==================== CATEGORIES ====================

@read_path(default=list)
def get_categories(db: Session):
    return db.query(Category).filter(Category.is_active.is_(True)).all()


@read_path()
def get_category_by_slug(db: Session, slug: str):
    return db.query(Category).filter(Category.slug == slug).first()


@write_path
def create_category(db: Session, data: dict) -> Category:
    category = Category(**data)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


# ==================== PRODUCTS ====================

@read_path(default=list)
def get_products(db: Session, limit=None, offset=None):
    query = db.query(Product).filter(Product.is_active.is_(True)).order_by(Product.id)
    return _paginate(query, limit, offset).all()


@read_path(default=list)
def get_products_by_category(db: Session, category_id: int, limit=None, offset=None):
    query = (
        db.query(Product)
        .filter(Product.category_id == category_id, Product.is_active.is_(True))
        .order_by(Product.id)
    )
    return _paginate(query, limit, offset).all()


@read_path()
def get_product_by_id(db: Session, product_id: int):
    return db.query(Product).filter(Product.id == product_id).first()


@read_path(default=list)
def get_featured_products(db: Session, limit: int = 10):
    return (
        db.query(Product)
        .filter(Product.is_featured.is_(True), Product.is_active.is_(True))
        .order_by(Product.id)
        .limit(limit)
        .all()
    )


@write_path
def create_product(db: Session, data: dict) -> Product:
    product = Product(**data)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@write_path
def update_product(db: Session, product_id: int, data: dict) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Product not found")

    _apply_fields(product, data)
    db.commit()
    db.refresh(product)
    return product


# ==================== REVIEWS ====================

@read_path(default=list)
def get_product_reviews(db: Session, product_id: int):
    return (
        db.query(Review)
        .filter(Review.product_id == product_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )


@write_path
def create_review(db: Session, user_id: int, data: dict) -> Review:
    product = db.query(Product).filter(Product.id == data["product_id"]).first()
    if not product:
        raise NotFound("Product not found")

    review = Review(user_id=user_id, is_verified=False, **data)
    db.add(review)
    db.flush()

    # Keep the product's rating summary in step with its reviews
    count, average = (
        db.query(func.count(Review.id), func.avg(Review.rating))
        .filter(Review.product_id == product.id)
        .one()
    )
    product.review_count = count
    product.rating = int(float(average) + 0.5) if average is not None else 0

    db.commit()
    db.refresh(review)
    return review


# ==================== CART ====================

@read_path(default=list)
def get_cart_items(db: Session, user_id: int):
    return db.query(CartItem).filter(CartItem.user_id == user_id).order_by(CartItem.id).all()


@write_path
def add_to_cart(db: Session, user_id: int, product_id: int, quantity: int = 1) -> CartItem:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product or not product.is_active:
        raise NotFound("Product not found")

    cart_item = (
        db.query(CartItem)
        .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
        .first()
    )

    # Add or increment
    if cart_item:
        cart_item.quantity += quantity
    else:
        cart_item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(cart_item)

    db.commit()
    db.refresh(cart_item)
    return cart_item


def _own_cart_item(db: Session, user_id: int, item_id: int) -> CartItem:
    cart_item = (
        db.query(CartItem)
        .filter(CartItem.id == item_id, CartItem.user_id == user_id)
        .first()
    )
    if not cart_item:
        raise NotFound("Cart item not found")
    return cart_item


@write_path
def update_cart_item(db: Session, user_id: int, item_id: int, quantity: int) -> CartItem:
    cart_item = _own_cart_item(db, user_id, item_id)
    cart_item.quantity = quantity
    db.commit()
    db.refresh(cart_item)
    return cart_item


@write_path
def remove_from_cart(db: Session, user_id: int, item_id: int) -> None:
    cart_item = _own_cart_item(db, user_id, item_id)
    db.delete(cart_item)
    db.commit()


@write_path
def clear_cart(db: Session, user_id: int) -> int:
    removed = db.query(CartItem).filter(CartItem.user_id == user_id).delete()
    db.commit()
    return removed


# ==================== WISHLIST ====================

@read_path(default=list)
def get_wishlist_items(db: Session, user_id: int):
    return (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.id)
        .all()
    )


@write_path
def add_to_wishlist(db: Session, user_id: int, product_id: int) -> WishlistItem:
    """Adding a product that is already wishlisted returns the existing row."""
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Product not found")

    item = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
        .first()
    )
    if item:
        return item

    item = WishlistItem(user_id=user_id, product_id=product_id)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@write_path
def remove_from_wishlist(db: Session, user_id: int, product_id: int) -> None:
    removed = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
        .delete()
    )
    if not removed:
        raise NotFound("Wishlist item not found")
    db.commit()


# ==================== ADDRESSES ====================

@read_path(default=list)
def get_user_addresses(db: Session, user_id: int):
    return db.query(Address).filter(Address.user_id == user_id).order_by(Address.id).all()


def own_address(db: Session, user_id: int, address_id: int):
    # Unwrapped so write paths see store errors instead of a missing row
    return (
        db.query(Address)
        .filter(Address.id == address_id, Address.user_id == user_id)
        .first()
    )


@read_path()
def get_user_address(db: Session, user_id: int, address_id: int):
    return own_address(db, user_id, address_id)


def _clear_default_addresses(db: Session, user_id: int, keep_id=None):
    query = db.query(Address).filter(Address.user_id == user_id, Address.is_default.is_(True))
    if keep_id is not None:
        query = query.filter(Address.id != keep_id)
    query.update({Address.is_default: False}, synchronize_session=False)


@write_path
def add_address(db: Session, user_id: int, data: dict) -> Address:
    if data.get("is_default"):
        _clear_default_addresses(db, user_id)

    address = Address(user_id=user_id, **data)
    db.add(address)
    db.commit()
    db.refresh(address)
    return address


@write_path
def update_address(db: Session, user_id: int, address_id: int, data: dict) -> Address:
    address = own_address(db, user_id, address_id)
    if not address:
        raise NotFound("Address not found")

    if data.get("is_default"):
        _clear_default_addresses(db, user_id, keep_id=address.id)

    _apply_fields(address, data)
    db.commit()
    db.refresh(address)
    return address


@write_path
def delete_address(db: Session, user_id: int, address_id: int) -> None:
    removed = (
        db.query(Address)
        .filter(Address.id == address_id, Address.user_id == user_id)
        .delete()
    )
    if not removed:
        raise NotFound("Address not found")
    db.commit()


# ==================== PAYMENT METHODS ====================

@read_path(default=list)
def get_payment_methods(db: Session, user_id: int):
    return (
        db.query(PaymentMethod)
        .filter(PaymentMethod.user_id == user_id)
        .order_by(PaymentMethod.id)
        .all()
    )


@write_path
def add_payment_method(db: Session, user_id: int, data: dict) -> PaymentMethod:
    if data.get("is_default"):
        (
            db.query(PaymentMethod)
            .filter(PaymentMethod.user_id == user_id)
            .update({PaymentMethod.is_default: False}, synchronize_session=False)
        )

    method = PaymentMethod(user_id=user_id, **data)
    db.add(method)
    db.commit()
    db.refresh(method)
    return method


@write_path
def delete_payment_method(db: Session, user_id: int, method_id: int) -> None:
    removed = (
        db.query(PaymentMethod)
        .filter(PaymentMethod.id == method_id, PaymentMethod.user_id == user_id)
        .delete()
    )
    if not removed:
        raise NotFound("Payment method not found")
    db.commit()


# ==================== ORDERS ====================

@read_path()
def get_order_by_id(db: Session, order_id: int):
    return db.query(Order).filter(Order.id == order_id).first()


@read_path(default=list)
def get_user_orders(db: Session, user_id: int):
    return (
        db.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


# ==================== ORDER ITEMS ====================

@read_path(default=list)
def get_order_items(db: Session, order_id: int):
    return db.query(OrderItem).filter(OrderItem.order_id == order_id).order_by(OrderItem.id).all()


@write_path
def create_order_item(db: Session, data: dict) -> OrderItem:
    item = OrderItem(**data)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


# ==================== BANNERS ====================

@read_path(default=list)
def get_active_banners(db: Session, now=None):
    now = now or utcnow()
    return (
        db.query(Banner)
        .filter(
            Banner.is_active.is_(True),
            or_(Banner.start_date.is_(None), Banner.start_date <= now),
            or_(Banner.end_date.is_(None), Banner.end_date >= now),
        )
        .order_by(Banner.position, Banner.id)
        .all()
    )


@write_path
def create_banner(db: Session, data: dict) -> Banner:
    banner = Banner(**data)
    db.add(banner)
    db.commit()
    db.refresh(banner)
    return banner
