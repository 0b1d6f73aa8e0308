"""
Delivery confirmation by one-time code.

    unset -> issued -> verified            (success, terminal)
             issued -> expired             (failure, terminal until resent)
             issued -> issued              (resend, new code)

Nothing here commits; callers own the transaction.
"""

import logging
from enum import Enum

from .errors import Conflict, OtpResendLimit
from .models import Order, OrderStatusEnum
from .otp_utils import generate_otp, otp_expiry, utcnow

logger = logging.getLogger(__name__)


class OtpState(str, Enum):
    UNSET = "unset"
    ISSUED = "issued"
    VERIFIED = "verified"
    EXPIRED = "expired"


class OtpCheck(str, Enum):
    VERIFIED = "verified"
    MISMATCH = "mismatch"
    EXPIRED = "expired"
    NOT_ISSUED = "not_issued"


def otp_state(order: Order, now=None) -> OtpState:
    if order.delivery_otp_verified:
        return OtpState.VERIFIED
    if not order.delivery_otp or order.delivery_otp_expiry is None:
        return OtpState.UNSET
    if (now or utcnow()) >= order.delivery_otp_expiry:
        return OtpState.EXPIRED
    return OtpState.ISSUED


def issue_delivery_otp(order: Order, ttl_minutes: int, now=None) -> str:
    otp = generate_otp()
    order.delivery_otp = otp
    order.delivery_otp_expiry = otp_expiry(ttl_minutes, now)
    order.delivery_otp_verified = False
    logger.info("Delivery OTP issued for order %s", order.order_number)
    return otp


def resend_delivery_otp(order: Order, ttl_minutes: int, max_resends: int, now=None) -> str:
    """Overwrite the current code; the previous one stops working."""
    if order.status != OrderStatusEnum.SHIPPED:
        raise Conflict("Delivery code is only available for shipped orders")
    if order.delivery_otp_verified:
        raise Conflict("Delivery already confirmed")
    if (order.delivery_otp_resends or 0) >= max_resends:
        raise OtpResendLimit("Delivery code resend limit reached")

    order.delivery_otp_resends = (order.delivery_otp_resends or 0) + 1
    return issue_delivery_otp(order, ttl_minutes, now)


def check_delivery_otp(order: Order, code: str, now=None) -> OtpCheck:
    """Detailed outcome; delivery-side callers must collapse failures into one message."""
    state = otp_state(order, now)
    if state in (OtpState.UNSET, OtpState.VERIFIED):
        return OtpCheck.NOT_ISSUED
    if state == OtpState.EXPIRED:
        return OtpCheck.EXPIRED
    if code != order.delivery_otp:
        return OtpCheck.MISMATCH
    return OtpCheck.VERIFIED


def confirm_delivery(order: Order, code: str, now=None) -> OtpCheck:
    """Shipped -> delivered when the code matches and has not expired."""
    if order.status != OrderStatusEnum.SHIPPED:
        return OtpCheck.NOT_ISSUED

    result = check_delivery_otp(order, code, now)
    if result == OtpCheck.VERIFIED:
        order.delivery_otp_verified = True
        order.delivery_otp = None
        order.status = OrderStatusEnum.DELIVERED
        logger.info("Order %s delivered", order.order_number)
    else:
        logger.info("Delivery OTP for order %s failed: %s", order.order_number, result.value)
    return result
