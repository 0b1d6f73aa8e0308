from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from . import queries
from .database import get_db
from .dependencies import get_current_user, require_admin
from .models import User
from .store_schema import (
    BannerCreate,
    BannerOut,
    CategoryCreate,
    CategoryOut,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    ReviewCreate,
    ReviewOut,
)

categories_router = APIRouter(prefix="/categories", tags=["store"])
products_router = APIRouter(prefix="/products", tags=["store"])
reviews_router = APIRouter(prefix="/reviews", tags=["store"])
banners_router = APIRouter(prefix="/banners", tags=["store"])


# ---------- CATEGORY ----------
@categories_router.get("/list", response_model=List[CategoryOut])
def read_categories(db: Session = Depends(get_db)):
    return queries.get_categories(db)


@categories_router.get("/bySlug", response_model=Optional[CategoryOut])
def read_category(slug: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return queries.get_category_by_slug(db, slug)


@categories_router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    response_model=CategoryOut
)
def create_category(
    category: CategoryCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return queries.create_category(db, category.model_dump())


# ---------- PRODUCT ----------
@products_router.get("/list", response_model=List[ProductOut])
def read_products(
    limit: int | None = Query(None, ge=1, le=100),
    offset: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    return queries.get_products(db, limit, offset)


@products_router.get("/byCategory", response_model=List[ProductOut])
def read_products_by_category(
    category_id: int = Query(..., alias="categoryId"),
    limit: int | None = Query(None, ge=1, le=100),
    offset: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    return queries.get_products_by_category(db, category_id, limit, offset)


@products_router.get("/byId", response_model=Optional[ProductOut])
def read_product(id: int = Query(...), db: Session = Depends(get_db)):
    return queries.get_product_by_id(db, id)


@products_router.get("/featured", response_model=List[ProductOut])
def read_featured(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return queries.get_featured_products(db, limit)


@products_router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    response_model=ProductOut
)
def create_product(
    product: ProductCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return queries.create_product(db, product.model_dump())


@products_router.post("/update", response_model=ProductOut)
def update_product(
    product: ProductUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    data = product.model_dump(exclude_unset=True, exclude_none=True)
    product_id = data.pop("id")
    return queries.update_product(db, product_id, data)


# ---------- REVIEW ----------
@reviews_router.get("/byProductId", response_model=List[ReviewOut])
def read_reviews(
    product_id: int = Query(..., alias="productId"),
    db: Session = Depends(get_db),
):
    return queries.get_product_reviews(db, product_id)


@reviews_router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    response_model=ReviewOut
)
def create_review(
    review: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return queries.create_review(db, current_user.id, review.model_dump())


# ---------- BANNER ----------
@banners_router.get("/list", response_model=List[BannerOut])
def read_banners(db: Session = Depends(get_db)):
    return queries.get_active_banners(db)


@banners_router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    response_model=BannerOut
)
def create_banner(
    banner: BannerCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return queries.create_banner(db, banner.model_dump())
