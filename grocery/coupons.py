import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, conint, field_validator, model_validator
from sqlalchemy.orm import Session

from .database import get_db, read_path, write_path
from .dependencies import require_admin
from .errors import CouponRejected
from .models import Coupon, DiscountTypeEnum
from .otp_utils import to_naive_utc, utcnow
from .schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coupons", tags=["coupons"])

# Rejection reasons, in the order they are checked
NOT_FOUND = "Coupon not found"
INACTIVE = "Coupon is inactive"
EXPIRED = "Coupon expired"
USAGE_LIMIT_REACHED = "Coupon usage limit reached"
BELOW_MINIMUM = "Order amount below minimum"


# =====================================================
# Pydantic Schemas
# =====================================================

class CouponCreate(CamelModel):
    code: str = Field(min_length=1, max_length=50)
    description: str | None = None
    discount_type: DiscountTypeEnum
    discount_value: conint(gt=0)
    min_order_amount: conint(ge=0) = 0
    max_discount: conint(ge=0) | None = None
    usage_limit: conint(ge=0) | None = None
    expiry_date: datetime | None = None
    is_active: bool = True

    @field_validator("expiry_date")
    @classmethod
    def expiry_in_utc(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == DiscountTypeEnum.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponOut(CouponCreate):
    id: int
    usage_count: int


class CouponValidationOut(CamelModel):
    valid: bool
    message: str | None = None
    coupon: CouponOut | None = None


# =====================================================
# Service Logic
# =====================================================

@dataclass
class CouponCheck:
    valid: bool
    coupon: Optional[Coupon] = None
    message: Optional[str] = None


def check_coupon(coupon: Optional[Coupon], order_amount: int, now: datetime | None = None) -> CouponCheck:
    """First failing rule wins; the coupon row is never modified."""
    now = now or utcnow()

    if coupon is None:
        return CouponCheck(valid=False, message=NOT_FOUND)
    if not coupon.is_active:
        return CouponCheck(valid=False, message=INACTIVE)
    if coupon.expiry_date is not None and coupon.expiry_date < now:
        return CouponCheck(valid=False, message=EXPIRED)
    if coupon.usage_limit is not None and (coupon.usage_count or 0) >= coupon.usage_limit:
        return CouponCheck(valid=False, message=USAGE_LIMIT_REACHED)
    if coupon.min_order_amount and order_amount < coupon.min_order_amount:
        return CouponCheck(valid=False, message=BELOW_MINIMUM)

    return CouponCheck(valid=True, coupon=coupon)


def find_coupon(db: Session, code: str):
    return db.query(Coupon).filter(Coupon.code == code).first()


@read_path()
def get_coupon_by_code(db: Session, code: str):
    return find_coupon(db, code)


def validate_coupon(db: Session, code: str, order_amount: int, now: datetime | None = None) -> CouponCheck:
    return check_coupon(get_coupon_by_code(db, code), order_amount, now)


def consume_coupon(db: Session, coupon: Coupon) -> None:
    """
    Count one use of the coupon inside the caller's transaction.

    The increment is a single conditional UPDATE so two concurrent orders
    cannot both take the last remaining use. Does not commit.
    """
    updated = (
        db.query(Coupon)
        .filter(
            Coupon.id == coupon.id,
            Coupon.is_active.is_(True),
            (Coupon.usage_limit.is_(None)) | (Coupon.usage_count < Coupon.usage_limit),
        )
        .update({Coupon.usage_count: Coupon.usage_count + 1}, synchronize_session=False)
    )
    if updated != 1:
        logger.info("Coupon %s ran out while placing an order", coupon.code)
        raise CouponRejected(USAGE_LIMIT_REACHED)


def redeem_coupon(db: Session, code: str, order_amount: int, now: datetime | None = None) -> Coupon:
    """Validate then consume; raises CouponRejected with the first failing reason."""
    # Store errors must reach the write path, not read as "not found"
    result = check_coupon(find_coupon(db, code), order_amount, now)
    if not result.valid:
        logger.info("Coupon %s rejected: %s", code, result.message)
        raise CouponRejected(result.message)

    consume_coupon(db, result.coupon)
    return result.coupon


@write_path
def create_coupon(db: Session, data: dict) -> Coupon:
    coupon = Coupon(**data)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


# =====================================================
# API Routes
# =====================================================

@router.get("/validate", response_model=CouponValidationOut, response_model_exclude_none=True)
def validate(
    code: str = Query(..., min_length=1),
    order_amount: int = Query(..., alias="orderAmount", ge=0),
    db: Session = Depends(get_db),
):
    result = validate_coupon(db, code, order_amount)
    if not result.valid:
        return {"valid": False, "message": result.message}
    return {"valid": True, "coupon": result.coupon}


@router.post("/create", response_model=CouponOut, status_code=status.HTTP_201_CREATED)
def create(
    payload: CouponCreate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return create_coupon(db, payload.model_dump())
