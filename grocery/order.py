import logging
import secrets
import time
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import Field, conint, model_validator
from sqlalchemy.orm import Session, joinedload

from .config import Settings
from .coupons import redeem_coupon
from .database import get_db, write_path
from .delivery import (
    OtpCheck,
    OtpState,
    confirm_delivery,
    issue_delivery_otp,
    otp_state,
    resend_delivery_otp,
)
from .dependencies import get_current_user, get_settings, require_admin
from .email_utils import send_delivery_otp_email
from .errors import Conflict, Forbidden, NotFound, OtpFailed, OutOfStock, ValidationFailed
from .models import (
    CartItem,
    Coupon,
    Order,
    OrderItem,
    OrderStatusEnum,
    PaymentModeEnum,
    PaymentStatusEnum,
    Product,
    User,
)
from .otp_utils import utcnow
from .pricing import cart_subtotal, compute_totals, coupon_discount, order_total
from .queries import (
    create_order_item,
    get_order_by_id,
    get_order_items,
    get_user_by_id,
    get_user_orders,
    own_address,
)
from .schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])
items_router = APIRouter(prefix="/orderItems", tags=["orders"])

# Forward-only progression; cancelled is reachable from any non-terminal state
STATUS_FLOW = [
    OrderStatusEnum.PENDING,
    OrderStatusEnum.CONFIRMED,
    OrderStatusEnum.PROCESSING,
    OrderStatusEnum.SHIPPED,
    OrderStatusEnum.DELIVERED,
]
TERMINAL_STATUSES = {OrderStatusEnum.DELIVERED, OrderStatusEnum.CANCELLED}

GENERIC_OTP_FAILURE = "Invalid or expired delivery code"


# =====================================================
# Pydantic Schemas
# =====================================================

class OrderItemCreate(CamelModel):
    order_id: int
    product_id: int
    product_name: str = Field(min_length=1, max_length=255)
    product_image: str | None = None
    quantity: conint(gt=0)
    price: conint(ge=0)


class OrderItemOut(CamelModel):
    id: int
    order_id: int
    product_id: int
    product_name: str
    product_image: str | None = None
    quantity: int
    price: int


class OrderOut(CamelModel):
    id: int
    user_id: int
    order_number: str
    address_id: int
    subtotal: int
    discount_amount: int
    delivery_charge: int
    total_amount: int
    status: OrderStatusEnum
    payment_method: PaymentModeEnum
    payment_status: PaymentStatusEnum
    payment_id: str | None = None
    coupon_code: str | None = None
    estimated_delivery_date: datetime | None = None
    delivery_otp_verified: bool
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: List[OrderItemOut] = []


class OrderCreate(CamelModel):
    address_id: int
    subtotal: conint(ge=0)
    discount_amount: conint(ge=0) = 0
    delivery_charge: conint(ge=0) = 0
    total_amount: conint(ge=0)
    payment_method: PaymentModeEnum
    coupon_code: str | None = Field(default=None, max_length=50)
    notes: str | None = None

    @model_validator(mode="after")
    def check_total(self):
        expected = order_total(self.subtotal, self.discount_amount, self.delivery_charge)
        if self.total_amount != expected:
            raise ValueError("totalAmount must equal subtotal - discountAmount + deliveryCharge")
        return self


class CheckoutIn(CamelModel):
    address_id: int
    payment_method: PaymentModeEnum
    coupon_code: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class OrderStatusUpdate(CamelModel):
    id: int
    status: OrderStatusEnum


class PaymentStatusUpdate(CamelModel):
    id: int
    payment_status: PaymentStatusEnum
    payment_id: str | None = Field(default=None, max_length=100)


class OrderIdIn(CamelModel):
    id: int


class DeliveryOtpVerify(CamelModel):
    id: int
    otp: str = Field(min_length=1, max_length=6)


class DeliveryOtpOut(CamelModel):
    state: OtpState
    otp: str | None = None
    expires_at: datetime | None = None


# =====================================================
# Service Logic
# =====================================================

def generate_order_number() -> str:
    # Timestamp plus 64 random bits; not enumerable
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(8).upper()}"


def check_status_transition(current: OrderStatusEnum, new: OrderStatusEnum) -> None:
    if current in TERMINAL_STATUSES:
        raise Conflict(f"Order is already {current.value}")
    if new == OrderStatusEnum.CANCELLED:
        return
    if new == OrderStatusEnum.DELIVERED:
        raise Conflict("Delivery must be confirmed with the delivery code")
    if STATUS_FLOW.index(new) <= STATUS_FLOW.index(current):
        raise Conflict(f"Cannot move order from {current.value} to {new.value}")


def _visible_order(db: Session, user: User, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order or (order.user_id != user.id and not user.is_admin):
        raise NotFound("Order not found")
    return order


def reserve_stock(db: Session, product: Product, quantity: int) -> None:
    # Conditional decrement; concurrent checkouts cannot oversell
    updated = (
        db.query(Product)
        .filter(Product.id == product.id, Product.stock >= quantity)
        .update({Product.stock: Product.stock - quantity}, synchronize_session=False)
    )
    if updated != 1:
        raise OutOfStock(f"Not enough stock for {product.name}")


def release_order(db: Session, order: Order) -> None:
    """Hand back reserved stock and the coupon use of a cancelled order. Does not commit."""
    if order.stock_reserved:
        for item in order.items:
            (
                db.query(Product)
                .filter(Product.id == item.product_id)
                .update({Product.stock: Product.stock + item.quantity}, synchronize_session=False)
            )
        order.stock_reserved = False

    if order.coupon_code:
        (
            db.query(Coupon)
            .filter(Coupon.code == order.coupon_code, Coupon.usage_count > 0)
            .update({Coupon.usage_count: Coupon.usage_count - 1}, synchronize_session=False)
        )
    logger.info("Order %s cancelled; stock and coupon released", order.order_number)


@write_path
def place_order_service(
    db: Session,
    user: User,
    data: CheckoutIn,
    settings: Settings,
    now: datetime | None = None,
) -> Order:
    """
    Turn the user's cart into an order.

    Coupon use, stock, the order, its item snapshots and the emptied cart
    are committed together or not at all.
    """
    address = own_address(db, user.id, data.address_id)
    if not address:
        raise NotFound("Address not found")

    cart_items = (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.user_id == user.id)
        .order_by(CartItem.id)
        .all()
    )
    if not cart_items:
        raise ValidationFailed("Cart is empty")

    lines = []
    for item in cart_items:
        product = item.product
        if product is None or not product.is_active:
            raise NotFound(f"Product {item.product_id} is no longer available")
        if item.quantity > product.stock:
            raise OutOfStock(f"Not enough stock for {product.name}")
        lines.append((product, item.quantity, product.discounted_price))

    subtotal = cart_subtotal((price, quantity) for _, quantity, price in lines)

    coupon = None
    if data.coupon_code:
        coupon = redeem_coupon(db, data.coupon_code, subtotal, now)

    totals = compute_totals(
        ((price, quantity) for _, quantity, price in lines),
        settings.delivery_charge,
        settings.free_delivery_threshold,
        coupon,
    )

    for product, quantity, _ in lines:
        reserve_stock(db, product, quantity)

    order = Order(
        user_id=user.id,
        order_number=generate_order_number(),
        address_id=address.id,
        subtotal=totals.subtotal,
        discount_amount=totals.discount_amount,
        delivery_charge=totals.delivery_charge,
        total_amount=totals.total_amount,
        status=OrderStatusEnum.PENDING,
        payment_method=data.payment_method,
        payment_status=PaymentStatusEnum.PENDING,
        coupon_code=coupon.code if coupon else None,
        stock_reserved=True,
        notes=data.notes,
    )
    db.add(order)
    db.flush()  # get order.id

    db.add_all(
        OrderItem(
            order_id=order.id,
            product_id=product.id,
            product_name=product.name,
            product_image=product.image_url,
            quantity=quantity,
            price=price,
        )
        for product, quantity, price in lines
    )

    # Clear cart
    db.query(CartItem).filter(CartItem.user_id == user.id).delete(synchronize_session=False)

    db.commit()
    db.refresh(order)
    logger.info(
        "Order %s placed by user %s: total %s", order.order_number, user.id, order.total_amount
    )
    return order


@write_path
def create_order(db: Session, user: User, data: OrderCreate, now: datetime | None = None) -> Order:
    """Place an order from client-computed totals."""
    if not own_address(db, user.id, data.address_id):
        raise NotFound("Address not found")

    if data.coupon_code:
        coupon = redeem_coupon(db, data.coupon_code, data.subtotal, now)
        allowed = coupon_discount(
            coupon.discount_type.value, coupon.discount_value, coupon.max_discount, data.subtotal
        )
        if data.discount_amount > allowed:
            raise ValidationFailed("discountAmount exceeds what the coupon allows")
    elif data.discount_amount:
        raise ValidationFailed("discountAmount requires a coupon")

    order = Order(
        **data.model_dump(),
        user_id=user.id,
        order_number=generate_order_number(),
        status=OrderStatusEnum.PENDING,
        payment_status=PaymentStatusEnum.PENDING,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


@write_path
def update_order_status(
    db: Session,
    user: User,
    order_id: int,
    new_status: OrderStatusEnum,
    settings: Settings,
) -> tuple[Order, Optional[str]]:
    """
    Move an order forward. Customers may only cancel their own orders.
    Returns the order and the delivery code when one was issued.
    """
    order = _visible_order(db, user, order_id)
    if not user.is_admin and new_status != OrderStatusEnum.CANCELLED:
        raise Forbidden("Only cancellation is allowed")

    check_status_transition(order.status, new_status)
    order.status = new_status
    if new_status == OrderStatusEnum.CANCELLED:
        release_order(db, order)

    otp = None
    if new_status == OrderStatusEnum.SHIPPED:
        otp = issue_delivery_otp(order, settings.delivery_otp_ttl_minutes)

    db.commit()
    db.refresh(order)
    return order, otp


@write_path
def update_payment_status(
    db: Session,
    user: User,
    order_id: int,
    payment_status: PaymentStatusEnum,
    payment_id: str | None = None,
) -> Order:
    order = _visible_order(db, user, order_id)
    if order.payment_status == PaymentStatusEnum.COMPLETED:
        raise Conflict("Payment already completed")

    order.payment_status = payment_status
    if payment_id:
        order.payment_id = payment_id

    db.commit()
    db.refresh(order)
    return order


@write_path
def resend_order_otp(db: Session, user: User, order_id: int, settings: Settings) -> tuple[Order, str]:
    order = _visible_order(db, user, order_id)
    otp = resend_delivery_otp(
        order,
        settings.delivery_otp_ttl_minutes,
        settings.delivery_otp_max_resends,
    )
    db.commit()
    db.refresh(order)
    return order, otp


@write_path
def verify_order_otp(db: Session, order_id: int, code: str, now: datetime | None = None) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found")

    # Wrong and expired codes look the same to the delivery side
    if confirm_delivery(order, code, now) != OtpCheck.VERIFIED:
        raise OtpFailed(GENERIC_OTP_FAILURE)

    db.commit()
    db.refresh(order)
    return order


@write_path
def add_order_item(db: Session, user: User, data: OrderItemCreate) -> OrderItem:
    order = db.query(Order).filter(Order.id == data.order_id, Order.user_id == user.id).first()
    if not order:
        raise NotFound("Order not found")
    if order.status != OrderStatusEnum.PENDING:
        raise Conflict("Items can only be added to pending orders")
    return create_order_item(db, data.model_dump())


def _email_delivery_code(background_tasks, db, settings, order, otp):
    if not otp or not settings.email_enabled:
        return
    owner = get_user_by_id(db, order.user_id)
    if owner and owner.email:
        background_tasks.add_task(
            send_delivery_otp_email, settings, owner.email, owner.name, order.order_number, otp
        )


# =====================================================
# API Routes
# =====================================================

@router.get("/list", response_model=List[OrderOut])
def my_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_user_orders(db, current_user.id)


@router.get("/byId", response_model=Optional[OrderOut])
def order_by_id(
    id: int = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = get_order_by_id(db, id)
    if not order or (order.user_id != current_user.id and not current_user.is_admin):
        return None
    return order


@router.post("/create", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
def place_raw_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return create_order(db, current_user, data)


@router.post("/checkout", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
def checkout(
    data: CheckoutIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    return place_order_service(db, current_user, data, settings)


@router.post("/updateStatus", response_model=OrderOut)
def change_status(
    data: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    order, otp = update_order_status(db, current_user, data.id, data.status, settings)
    _email_delivery_code(background_tasks, db, settings, order, otp)
    return order


@router.post("/updatePaymentStatus", response_model=OrderOut)
def change_payment_status(
    data: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return update_payment_status(db, current_user, data.id, data.payment_status, data.payment_id)


@router.get("/deliveryOtp", response_model=DeliveryOtpOut, response_model_exclude_none=True)
def delivery_otp(
    id: int = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = get_order_by_id(db, id)
    if not order or order.user_id != current_user.id:
        raise NotFound("Order not found")

    state = otp_state(order, utcnow())
    if state == OtpState.ISSUED:
        return {"state": state, "otp": order.delivery_otp, "expires_at": order.delivery_otp_expiry}
    if state == OtpState.EXPIRED:
        return {"state": state, "expires_at": order.delivery_otp_expiry}
    return {"state": state}


@router.post("/resendDeliveryOtp", response_model=DeliveryOtpOut)
def resend_otp(
    data: OrderIdIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    order, otp = resend_order_otp(db, current_user, data.id, settings)
    _email_delivery_code(background_tasks, db, settings, order, otp)

    # Only the customer gets to see the code itself
    if order.user_id != current_user.id:
        return {"state": OtpState.ISSUED, "expires_at": order.delivery_otp_expiry}
    return {"state": OtpState.ISSUED, "otp": otp, "expires_at": order.delivery_otp_expiry}


@router.post("/verifyDeliveryOtp", response_model=OrderOut)
def verify_otp(
    data: DeliveryOtpVerify,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return verify_order_otp(db, data.id, data.otp)


# ---------- ORDER ITEMS ----------

@items_router.get("/byOrderId", response_model=List[OrderItemOut])
def items_by_order(
    order_id: int = Query(..., alias="orderId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = get_order_by_id(db, order_id)
    if not order or (order.user_id != current_user.id and not current_user.is_admin):
        return []
    return get_order_items(db, order_id)


@items_router.post("/create", response_model=OrderItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    data: OrderItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return add_order_item(db, current_user, data)
