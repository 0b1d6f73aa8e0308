from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from . import queries
from .database import get_db
from .dependencies import get_current_user
from .models import User
from .schemas import SuccessOut
from .store_schema import (
    CartItemCreate,
    CartItemOut,
    CartItemUpdate,
    IdIn,
    WishlistItemIn,
    WishlistItemOut,
)

router = APIRouter(
    prefix="/cart",
    tags=["cart"],
)
wishlist_router = APIRouter(
    prefix="/wishlist",
    tags=["cart"],
)


# ---------- CART ----------

@router.get("/list", response_model=List[CartItemOut])
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.get_cart_items(db, current_user.id)


@router.post("/add", response_model=CartItemOut, status_code=status.HTTP_201_CREATED)
def add_item_to_cart(
    data: CartItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.add_to_cart(db, current_user.id, data.product_id, data.quantity)


@router.post("/update", response_model=CartItemOut)
def update_cart_item(
    data: CartItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.update_cart_item(db, current_user.id, data.id, data.quantity)


@router.post("/remove", response_model=SuccessOut)
def remove_cart_item(
    data: IdIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    queries.remove_from_cart(db, current_user.id, data.id)
    return {"success": True}


@router.post("/clear", response_model=SuccessOut)
def clear_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    queries.clear_cart(db, current_user.id)
    return {"success": True}


# ---------- WISHLIST ----------

@wishlist_router.get("/list", response_model=List[WishlistItemOut])
def get_wishlist(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.get_wishlist_items(db, current_user.id)


@wishlist_router.post("/add", response_model=WishlistItemOut, status_code=status.HTTP_201_CREATED)
def add_to_wishlist(
    data: WishlistItemIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.add_to_wishlist(db, current_user.id, data.product_id)


@wishlist_router.post("/remove", response_model=SuccessOut)
def remove_from_wishlist(
    data: WishlistItemIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    queries.remove_from_wishlist(db, current_user.id, data.product_id)
    return {"success": True}
