from types import SimpleNamespace

import pytest

from grocery.pricing import (
    cart_subtotal,
    compute_totals,
    coupon_discount,
    delivery_charge_for,
    discounted_price,
)


def coupon(discount_type, value, max_discount=None):
    return SimpleNamespace(
        discount_type=discount_type,
        discount_value=value,
        max_discount=max_discount,
    )


@pytest.mark.parametrize(
    "price,pct,expected",
    [
        (10000, 0, 10000),
        (10000, 10, 9000),
        (10000, 100, 0),
        (999, 33, 669),  # 669.33 rounds down
        (999, 50, 500),  # 499.5 rounds half-up
        (1, 50, 1),
        (0, 25, 0),
    ],
)
def test_discounted_price(price, pct, expected):
    assert discounted_price(price, pct) == expected


def test_discounted_price_never_exceeds_price():
    for price in (0, 1, 7, 99, 1234, 100000):
        for pct in range(0, 101, 7):
            result = discounted_price(price, pct)
            assert isinstance(result, int)
            assert 0 <= result <= price


def test_discounted_price_rejects_out_of_range_percentage():
    with pytest.raises(ValueError):
        discounted_price(1000, 101)
    with pytest.raises(ValueError):
        discounted_price(1000, -1)


def test_cart_scenario_waives_delivery_at_threshold():
    totals = compute_totals([(10000, 2), (2500, 1)], flat_fee=5000, free_threshold=20000)

    assert totals.subtotal == 22500
    assert totals.delivery_charge == 0
    assert totals.discount_amount == 0
    assert totals.total_amount == 22500


def test_delivery_charged_below_threshold():
    assert delivery_charge_for(19999, 5000, 20000) == 5000
    assert delivery_charge_for(20000, 5000, 20000) == 0


def test_fixed_coupon():
    totals = compute_totals(
        [(10000, 2), (2500, 1)], 5000, 20000, coupon("fixed", 3000)
    )
    assert totals.discount_amount == 3000
    assert totals.total_amount == 19500


def test_percentage_coupon_is_capped():
    assert coupon_discount("percentage", 50, 5000, 22500) == 5000

    totals = compute_totals(
        [(10000, 2), (2500, 1)], 5000, 20000, coupon("percentage", 50, 5000)
    )
    assert totals.discount_amount == 5000
    assert totals.total_amount == 17500


def test_percentage_coupon_without_cap():
    assert coupon_discount("percentage", 50, None, 22500) == 11250


def test_fixed_coupon_respects_cap():
    assert coupon_discount("fixed", 3000, 1000, 22500) == 1000


def test_total_never_negative():
    totals = compute_totals([(1000, 1)], 5000, 20000, coupon("fixed", 10000))

    assert totals.total_amount == 0
    assert totals.discount_amount == 6000
    assert totals.total_amount == (
        totals.subtotal - totals.discount_amount + totals.delivery_charge
    )


def test_subtotal_of_empty_cart():
    assert cart_subtotal([]) == 0
