from datetime import datetime, timedelta

import pytest

from grocery.delivery import (
    OtpCheck,
    OtpState,
    check_delivery_otp,
    confirm_delivery,
    issue_delivery_otp,
    otp_state,
    resend_delivery_otp,
)
from grocery.errors import Conflict, OtpResendLimit
from grocery.models import Order, OrderStatusEnum
from grocery.otp_utils import generate_otp

NOW = datetime(2026, 10, 18, 12, 0, 0)


def shipped_order(**fields):
    values = {"order_number": "ORD-1", "status": OrderStatusEnum.SHIPPED}
    values.update(fields)
    return Order(**values)


def test_generated_codes_are_six_digits():
    for _ in range(50):
        code = generate_otp()
        assert len(code) == 6
        assert code.isdigit()


def test_unset_until_issued():
    assert otp_state(shipped_order(), NOW) == OtpState.UNSET


def test_issue_sets_code_and_expiry():
    order = shipped_order(delivery_otp_verified=True)

    otp = issue_delivery_otp(order, ttl_minutes=30, now=NOW)

    assert order.delivery_otp == otp
    assert order.delivery_otp_expiry == NOW + timedelta(minutes=30)
    assert order.delivery_otp_verified is False
    assert otp_state(order, NOW) == OtpState.ISSUED


def test_correct_code_fails_after_expiry():
    order = shipped_order(
        delivery_otp="123456",
        delivery_otp_expiry=NOW - timedelta(seconds=1),
    )

    assert check_delivery_otp(order, "123456", NOW) == OtpCheck.EXPIRED
    assert confirm_delivery(order, "123456", NOW) == OtpCheck.EXPIRED
    assert order.status == OrderStatusEnum.SHIPPED
    assert otp_state(order, NOW) == OtpState.EXPIRED


def test_code_expires_exactly_at_expiry():
    order = shipped_order(delivery_otp="123456", delivery_otp_expiry=NOW)

    assert check_delivery_otp(order, "123456", NOW) == OtpCheck.EXPIRED


def test_wrong_code():
    order = shipped_order(
        delivery_otp="123456",
        delivery_otp_expiry=NOW + timedelta(minutes=5),
    )

    assert confirm_delivery(order, "654321", NOW) == OtpCheck.MISMATCH
    assert order.status == OrderStatusEnum.SHIPPED
    assert order.delivery_otp == "123456"


def test_matching_code_delivers():
    order = shipped_order(
        delivery_otp="123456",
        delivery_otp_expiry=NOW + timedelta(minutes=5),
    )

    assert confirm_delivery(order, "123456", NOW) == OtpCheck.VERIFIED
    assert order.status == OrderStatusEnum.DELIVERED
    assert order.delivery_otp_verified is True
    assert order.delivery_otp is None
    assert otp_state(order, NOW) == OtpState.VERIFIED


def test_only_shipped_orders_can_be_delivered():
    order = shipped_order(
        status=OrderStatusEnum.PROCESSING,
        delivery_otp="123456",
        delivery_otp_expiry=NOW + timedelta(minutes=5),
    )

    assert confirm_delivery(order, "123456", NOW) == OtpCheck.NOT_ISSUED
    assert order.status == OrderStatusEnum.PROCESSING


def test_resend_replaces_previous_code(monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr("grocery.delivery.generate_otp", lambda: next(codes))
    order = shipped_order()

    issue_delivery_otp(order, 30, NOW)
    resend_delivery_otp(order, 30, max_resends=5, now=NOW)

    assert order.delivery_otp == "222222"
    assert order.delivery_otp_resends == 1
    assert check_delivery_otp(order, "111111", NOW) == OtpCheck.MISMATCH
    assert check_delivery_otp(order, "222222", NOW) == OtpCheck.VERIFIED


def test_resend_revives_expired_code():
    order = shipped_order(delivery_otp="123456", delivery_otp_expiry=NOW - timedelta(minutes=1))

    resend_delivery_otp(order, 30, max_resends=5, now=NOW)

    assert otp_state(order, NOW) == OtpState.ISSUED


def test_resend_limit():
    order = shipped_order()
    issue_delivery_otp(order, 30, NOW)

    for _ in range(5):
        resend_delivery_otp(order, 30, max_resends=5, now=NOW)

    with pytest.raises(OtpResendLimit):
        resend_delivery_otp(order, 30, max_resends=5, now=NOW)


def test_resend_needs_shipped_order():
    with pytest.raises(Conflict):
        resend_delivery_otp(shipped_order(status=OrderStatusEnum.PENDING), 30, 5, NOW)
