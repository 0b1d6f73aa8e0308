from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from . import queries
from .database import get_db
from .dependencies import get_current_user
from .models import User
from .schemas import SuccessOut
from .store_schema import (
    AddressCreate,
    AddressOut,
    AddressUpdate,
    IdIn,
    PaymentMethodCreate,
    PaymentMethodOut,
)

addresses_router = APIRouter(prefix="/addresses", tags=["account"])
payment_methods_router = APIRouter(prefix="/paymentMethods", tags=["account"])


# ---------- ADDRESSES ----------

@addresses_router.get("/list", response_model=List[AddressOut])
def list_addresses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.get_user_addresses(db, current_user.id)


@addresses_router.post("/add", response_model=AddressOut, status_code=status.HTTP_201_CREATED)
def add_address(
    data: AddressCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.add_address(db, current_user.id, data.model_dump())


@addresses_router.post("/update", response_model=AddressOut)
def update_address(
    data: AddressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    address_id = changes.pop("id")
    return queries.update_address(db, current_user.id, address_id, changes)


@addresses_router.post("/delete", response_model=SuccessOut)
def delete_address(
    data: IdIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    queries.delete_address(db, current_user.id, data.id)
    return {"success": True}


# ---------- PAYMENT METHODS ----------

@payment_methods_router.get("/list", response_model=List[PaymentMethodOut])
def list_payment_methods(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.get_payment_methods(db, current_user.id)


@payment_methods_router.post(
    "/add",
    response_model=PaymentMethodOut,
    status_code=status.HTTP_201_CREATED,
)
def add_payment_method(
    data: PaymentMethodCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.add_payment_method(db, current_user.id, data.model_dump())


@payment_methods_router.post("/delete", response_model=SuccessOut)
def delete_payment_method(
    data: IdIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    queries.delete_payment_method(db, current_user.id, data.id)
    return {"success": True}
